"""
Review Repository

External platform reviews (`external_reviews`) and their drafted replies
(`review_responses`).
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from guestglow.models.schemas import (
    ExternalReview,
    IncomingReview,
    ResponseStatus,
    ReviewResponse,
    priority_for_rating,
    sentiment_for_rating,
)
from guestglow.repositories.base_repository import BaseRepository, to_iso
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)


class ReviewRepository(BaseRepository):
    """Repository for external reviews and review responses."""

    table_name = "external_reviews"
    responses_table = "review_responses"

    # ------------------------------------------------------------------
    # External reviews
    # ------------------------------------------------------------------
    def existing_review_ids(self, tenant_id: str, platform: str, platform_review_ids: List[str]) -> Set[str]:
        """Subset of platform_review_ids already stored for this tenant/platform."""
        if not platform_review_ids:
            return set()
        try:
            response = self._table() \
                .select("platform_review_id") \
                .eq("tenant_id", tenant_id) \
                .eq("platform", platform) \
                .in_("platform_review_id", platform_review_ids) \
                .execute()

            return {row["platform_review_id"] for row in self._rows(response)}

        except Exception as exc:
            self._handle_error("existing_review_ids", exc)

    def insert_review(self, tenant_id: str, platform: str, review: IncomingReview) -> ExternalReview:
        """Insert a review; sentiment and response_required are fixed here."""
        payload = {
            "tenant_id": tenant_id,
            "platform": platform,
            "platform_review_id": review.platform_review_id,
            "guest_name": review.guest_name,
            "rating": review.rating,
            "review_text": review.review_text,
            "review_date": to_iso(review.review_date),
            "platform_url": review.platform_url,
            "verified": review.verified_stay,
            "sentiment": sentiment_for_rating(review.rating).value,
            "response_required": review.rating <= 3,
        }
        try:
            response = self._table().insert(payload).execute()
            row = self._first(response)
            if not row:
                raise ValueError("Supabase insert returned no data")
            return ExternalReview(**row)

        except Exception as exc:
            self._handle_error(f"insert_review({review.platform_review_id})", exc)

    def get_review(self, review_id: str) -> Optional[ExternalReview]:
        try:
            response = self._table() \
                .select("*") \
                .eq("id", review_id) \
                .limit(1) \
                .execute()

            row = self._first(response)
            return ExternalReview(**row) if row else None

        except Exception as exc:
            self._handle_error(f"get_review({review_id})", exc)

    def list_ratings(
        self,
        tenant_id: str,
        platform: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """
        Rating rows (rating, platform, review_date) for aggregation.

        Args:
            since: inclusive lower bound on review_date
            until: exclusive upper bound on review_date
        """
        try:
            query = self._table() \
                .select("rating, platform, review_date") \
                .eq("tenant_id", tenant_id)

            if platform:
                query = query.eq("platform", platform)
            if since is not None:
                query = query.gte("review_date", since.isoformat())
            if until is not None:
                query = query.lt("review_date", until.isoformat())

            return self._rows(query.execute())

        except Exception as exc:
            self._handle_error("list_ratings", exc)

    # ------------------------------------------------------------------
    # Review responses
    # ------------------------------------------------------------------
    def has_response(self, review_id: str) -> bool:
        try:
            response = self._table(self.responses_table) \
                .select("id") \
                .eq("external_review_id", review_id) \
                .limit(1) \
                .execute()

            return bool(self._rows(response))

        except Exception as exc:
            self._handle_error(f"has_response({review_id})", exc)

    def latest_version(self, review_id: str) -> int:
        """Highest response_version stored for a review, 0 when none."""
        try:
            response = self._table(self.responses_table) \
                .select("response_version") \
                .eq("external_review_id", review_id) \
                .order("response_version", desc=True) \
                .limit(1) \
                .execute()

            row = self._first(response)
            return int(row.get("response_version") or 0) if row else 0

        except Exception as exc:
            self._handle_error(f"latest_version({review_id})", exc)

    def create_draft(
        self,
        review: ExternalReview,
        response_text: str,
        *,
        version: int = 1,
        model: str = "auto-generated-template"
    ) -> ReviewResponse:
        payload = {
            "tenant_id": review.tenant_id,
            "external_review_id": review.id,
            "response_text": response_text,
            "status": ResponseStatus.DRAFT.value,
            "response_version": version,
            "priority": priority_for_rating(review.rating).value,
            "ai_model_used": model,
        }
        try:
            response = self._table(self.responses_table).insert(payload).execute()
            row = self._first(response)
            if not row:
                raise ValueError("Supabase insert returned no data")

            draft = ReviewResponse(**row)
            logger.info("Drafted response %s (v%s) for review %s", draft.id, version, review.id)
            return draft

        except Exception as exc:
            self._handle_error(f"create_draft({review.id})", exc)

    def get_response(self, response_id: str) -> Optional[ReviewResponse]:
        try:
            response = self._table(self.responses_table) \
                .select("*") \
                .eq("id", response_id) \
                .limit(1) \
                .execute()

            row = self._first(response)
            return ReviewResponse(**row) if row else None

        except Exception as exc:
            self._handle_error(f"get_response({response_id})", exc)

    def update_response_status(
        self,
        response_id: str,
        new_status: ResponseStatus,
        *,
        expected_status: ResponseStatus,
        now: datetime,
        actor: Optional[str] = None
    ) -> Optional[ReviewResponse]:
        """Guarded status change; None when the response is no longer expected_status."""
        updates: Dict[str, Any] = {"status": new_status.value, "updated_at": now.isoformat()}
        if new_status == ResponseStatus.APPROVED:
            updates["approved_at"] = now.isoformat()
            updates["approved_by"] = actor
        try:
            response = self._table(self.responses_table) \
                .update(updates) \
                .eq("id", response_id) \
                .eq("status", expected_status.value) \
                .execute()

            row = self._first(response)
            return ReviewResponse(**row) if row else None

        except Exception as exc:
            self._handle_error(f"update_response_status({response_id})", exc)
