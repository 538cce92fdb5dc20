"""
External Review Sync

Ingests reviews pushed by a platform scraper, drafts replies for low ratings
and lets staff approve, reject or regenerate those drafts.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from guestglow.config import get_settings
from guestglow.models.schemas import (
    EmailPriority,
    EmailRequest,
    ExternalReview,
    ResponseStatus,
    ReviewResponse,
    ReviewSyncRequest,
    ReviewSyncResult,
)
from guestglow.models.transitions import (
    ApprovalEvent,
    InvalidTransitionError,
    transition_response,
)
from guestglow.repositories.audit_repository import AuditRepository
from guestglow.repositories.base_repository import utc_now
from guestglow.repositories.review_repository import ReviewRepository
from guestglow.services import email_templates
from guestglow.services.ai_response_generator import AIResponseGenerator
from guestglow.services.email_dispatcher import EmailDispatcher
from guestglow.services.rating_goals import RatingService
from guestglow.services.response_generator import generate_template_response
from guestglow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

AUTO_DRAFT_MAX_RATING = 3
AUTO_DRAFT_MODEL = "auto-generated-template"
REGENERATED_TEMPLATE_MODEL = "template"

RECENT_WINDOW_DAYS = 7
HISTORICAL_WINDOW_DAYS = 30
RATING_DROP_THRESHOLD = 0.3


class ReviewResponseNotFoundError(LookupError):
    """Raised when a review response (or its review) does not exist"""


def average(ratings: List[int]) -> Optional[float]:
    return sum(ratings) / len(ratings) if ratings else None


def rating_dropped(recent: List[int], historical: List[int]) -> bool:
    """True when the recent average fell more than the threshold below the historical one"""
    recent_avg = average(recent)
    historical_avg = average(historical)
    if recent_avg is None or historical_avg is None:
        return False
    return historical_avg - recent_avg > RATING_DROP_THRESHOLD


class ReviewService:
    """
    External review ingestion and response drafting
    """

    def __init__(
        self,
        review_repository: ReviewRepository,
        audit_repository: AuditRepository,
        email_dispatcher: EmailDispatcher,
        rating_service: RatingService,
        ai_generator: Optional[AIResponseGenerator] = None,
        now: Callable[[], datetime] = utc_now
    ):
        self.review_repo = review_repository
        self.audit_repo = audit_repository
        self.dispatcher = email_dispatcher
        self.rating_service = rating_service
        self.ai_generator = ai_generator
        self.now = now

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------
    async def sync(self, request: ReviewSyncRequest) -> ReviewSyncResult:
        """Store new reviews for one platform, skipping ones already present."""
        platform = request.platform.lower()
        incoming_ids = [review.platform_review_id for review in request.reviews]

        existing = await asyncio.to_thread(
            self.review_repo.existing_review_ids, request.tenant_id, platform, incoming_ids
        )

        synced = 0
        skipped = 0
        drafts = 0
        seen = set(existing)

        for incoming in request.reviews:
            if incoming.platform_review_id in seen:
                skipped += 1
                continue
            seen.add(incoming.platform_review_id)

            try:
                review = await asyncio.to_thread(
                    self.review_repo.insert_review, request.tenant_id, platform, incoming
                )
            except Exception as e:
                logger.error(f"Failed to insert review {incoming.platform_review_id}: {e}")
                continue

            synced += 1
            if await self.auto_draft(review) is not None:
                drafts += 1

        logger.info(
            f"Synced {platform} reviews for {request.tenant_id}: "
            f"synced={synced} skipped={skipped} drafts={drafts}"
        )

        alert = await self.check_rating_drop(request.tenant_id, platform)
        await self.rating_service.daily_progress(request.tenant_id, send_briefing=False)

        return ReviewSyncResult(
            platform=platform,
            synced=synced,
            skipped=skipped,
            drafts_created=drafts,
            rating_drop_alert=alert
        )

    async def auto_draft(self, review: ExternalReview) -> Optional[ReviewResponse]:
        """Draft a template reply for a low-rated review that has none yet."""
        if review.rating > AUTO_DRAFT_MAX_RATING:
            return None
        if await asyncio.to_thread(self.review_repo.has_response, review.id):
            return None

        text, tone = generate_template_response(
            review.review_text or "", review.rating, review.guest_name
        )
        draft = await asyncio.to_thread(
            self.review_repo.create_draft, review, text, version=1, model=AUTO_DRAFT_MODEL
        )

        await asyncio.to_thread(
            self.audit_repo.log_system_event,
            review.tenant_id,
            "review_response",
            "response_auto_generated",
            {
                "review_id": review.id,
                "response_id": draft.id,
                "platform": review.platform,
                "rating": review.rating,
                "tone": tone.value,
                "priority": draft.priority.value,
            },
        )
        return draft

    async def check_rating_drop(self, tenant_id: str, platform: str) -> bool:
        """Compare the last 7 days with the 30 days before; alert on a drop above 0.3."""
        now = self.now()
        recent_start = now - timedelta(days=RECENT_WINDOW_DAYS)
        historical_start = recent_start - timedelta(days=HISTORICAL_WINDOW_DAYS)

        recent_rows = await asyncio.to_thread(
            self.review_repo.list_ratings, tenant_id, platform, recent_start
        )
        historical_rows = await asyncio.to_thread(
            self.review_repo.list_ratings, tenant_id, platform, historical_start, recent_start
        )
        recent = [int(row["rating"]) for row in recent_rows]
        historical = [int(row["rating"]) for row in historical_rows]

        if not rating_dropped(recent, historical):
            return False

        recent_avg = average(recent)
        historical_avg = average(historical)
        logger.warning(
            f"Rating drop alert: {platform} dropped by {historical_avg - recent_avg:.2f} points"
        )

        recipients = settings.report_recipient_list or [settings.system_monitor_email]
        for recipient in recipients:
            try:
                await self.dispatcher.send(EmailRequest(
                    email_type="manager_alert",
                    recipient_email=recipient,
                    subject=f"📉 Rating Drop Alert: {platform} down {historical_avg - recent_avg:.2f}",
                    html_content=email_templates.rating_drop_email(
                        platform, recent_avg, historical_avg
                    ),
                    tenant_id=tenant_id,
                    priority=EmailPriority.HIGH
                ))
            except Exception as e:
                logger.error(f"Failed to send rating drop alert to {recipient}: {e}")
        return True

    # ------------------------------------------------------------------
    # Draft actions
    # ------------------------------------------------------------------
    async def _load(self, response_id: str) -> ReviewResponse:
        response = await asyncio.to_thread(self.review_repo.get_response, response_id)
        if response is None:
            raise ReviewResponseNotFoundError(f"Review response not found: {response_id}")
        return response

    async def _decide(
        self,
        response_id: str,
        event: ApprovalEvent,
        actor: Optional[str]
    ) -> ReviewResponse:
        response = await self._load(response_id)
        new_status = transition_response(response.status, event)

        updated = await asyncio.to_thread(
            self.review_repo.update_response_status,
            response_id,
            new_status,
            expected_status=response.status,
            now=self.now(),
            actor=actor,
        )
        if updated is None:
            raise InvalidTransitionError("review response", response.status, event)

        logger.info(f"Review response {response_id}: {response.status.value} -> {new_status.value}")
        return updated

    async def approve_response(self, response_id: str, actor: Optional[str] = None) -> ReviewResponse:
        return await self._decide(response_id, ApprovalEvent.APPROVE, actor)

    async def reject_response(self, response_id: str, actor: Optional[str] = None) -> ReviewResponse:
        return await self._decide(response_id, ApprovalEvent.REJECT, actor)

    async def regenerate_response(self, response_id: str, use_ai: bool = False) -> ReviewResponse:
        """
        Draft a new version of a reply.

        Approved replies are final and cannot be regenerated.
        """
        response = await self._load(response_id)
        if response.status == ResponseStatus.APPROVED:
            raise InvalidTransitionError("review response", response.status, ApprovalEvent.REJECT)

        review = await asyncio.to_thread(self.review_repo.get_review, response.external_review_id)
        if review is None:
            raise ReviewResponseNotFoundError(
                f"External review not found: {response.external_review_id}"
            )

        if use_ai and self.ai_generator is not None:
            text, source = await self.ai_generator.generate(
                review.review_text or "",
                review.rating,
                guest_name=review.guest_name,
                is_external=True,
                platform=review.platform
            )
            model = self.ai_generator.model if source == "ai" else REGENERATED_TEMPLATE_MODEL
        else:
            text, _ = generate_template_response(
                review.review_text or "", review.rating, review.guest_name
            )
            model = REGENERATED_TEMPLATE_MODEL

        latest = await asyncio.to_thread(self.review_repo.latest_version, review.id)
        return await asyncio.to_thread(
            self.review_repo.create_draft, review, text, version=latest + 1, model=model
        )
