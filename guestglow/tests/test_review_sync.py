"""
Tests for external review sync and response drafting
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from guestglow.models.schemas import (
    ExternalReview,
    IncomingReview,
    ResponsePriority,
    ResponseStatus,
    ReviewResponse,
    ReviewSyncRequest,
)
from guestglow.models.transitions import InvalidTransitionError
from guestglow.services import review_sync
from guestglow.services.review_sync import (
    AUTO_DRAFT_MODEL,
    REGENERATED_TEMPLATE_MODEL,
    ReviewResponseNotFoundError,
    ReviewService,
    rating_dropped,
)

NOW = datetime(2025, 1, 8, 12, 0, tzinfo=timezone.utc)


def stored_review(tenant_id, platform, incoming: IncomingReview) -> ExternalReview:
    return ExternalReview(
        id=f"rev-{incoming.platform_review_id}",
        tenant_id=tenant_id,
        platform=platform,
        platform_review_id=incoming.platform_review_id,
        guest_name=incoming.guest_name,
        rating=incoming.rating,
        review_text=incoming.review_text,
    )


def draft(**overrides) -> ReviewResponse:
    data = {
        "id": "resp-1",
        "tenant_id": "tenant-1",
        "external_review_id": "rev-g-2",
        "response_text": "Dear Kwame, ...",
        "status": ResponseStatus.DRAFT,
        "response_version": 1,
        "priority": ResponsePriority.HIGH,
        "ai_model_used": AUTO_DRAFT_MODEL,
    }
    data.update(overrides)
    return ReviewResponse(**data)


@pytest.fixture
def review_repo():
    repo = MagicMock()
    repo.existing_review_ids.return_value = {"g-1"}
    repo.insert_review.side_effect = stored_review
    repo.has_response.return_value = False
    repo.create_draft.side_effect = lambda review, text, version=1, model=AUTO_DRAFT_MODEL: draft(
        external_review_id=review.id, response_text=text, response_version=version, ai_model_used=model
    )
    repo.list_ratings.return_value = []
    repo.get_review.return_value = ExternalReview(
        id="rev-g-2",
        tenant_id="tenant-1",
        platform="google",
        platform_review_id="g-2",
        guest_name="Kwame",
        rating=2,
        review_text="Breakfast was cold",
    )
    repo.latest_version.return_value = 1
    return repo


@pytest.fixture
def audit_repo():
    return MagicMock()


@pytest.fixture
def rating_service():
    service = MagicMock()
    service.daily_progress = AsyncMock()
    return service


@pytest.fixture
def service(review_repo, audit_repo, mock_dispatcher, rating_service):
    return ReviewService(
        review_repo, audit_repo, mock_dispatcher, rating_service, now=lambda: NOW
    )


class TestRatingDrop:

    @pytest.mark.parametrize("recent,historical,expected", [
        ([3, 3], [4, 4], True),
        ([3, 4, 4], [4], True),
        ([4], [4], False),
        ([5], [4], False),
        ([], [5], False),
        ([1], [], False),
    ])
    def test_rating_dropped(self, recent, historical, expected):
        assert rating_dropped(recent, historical) is expected


class TestSync:

    @pytest.mark.asyncio
    async def test_sync_skips_known_and_duplicate_reviews(self, service, review_repo, rating_service):
        request = ReviewSyncRequest(
            tenant_id="tenant-1",
            platform="Google",
            reviews=[
                IncomingReview(platform_review_id="g-1", rating=5),
                IncomingReview(platform_review_id="g-2", rating=2, guest_name="Kwame",
                               review_text="Breakfast was cold"),
                IncomingReview(platform_review_id="g-2", rating=2),
                IncomingReview(platform_review_id="g-3", rating=5, review_text="Perfect"),
            ],
        )

        result = await service.sync(request)

        assert result.platform == "google"
        assert result.synced == 2
        assert result.skipped == 2
        assert result.drafts_created == 1
        assert result.rating_drop_alert is False
        review_repo.existing_review_ids.assert_called_once_with("tenant-1", "google", ["g-1", "g-2", "g-2", "g-3"])
        rating_service.daily_progress.assert_awaited_once_with("tenant-1", send_briefing=False)

        review, text = review_repo.create_draft.call_args.args
        assert review.platform_review_id == "g-2"
        assert "breakfast service" in text

    @pytest.mark.asyncio
    async def test_insert_failure_is_skipped(self, service, review_repo):
        review_repo.existing_review_ids.return_value = set()
        review_repo.insert_review.side_effect = [
            RuntimeError("duplicate key"),
            stored_review("tenant-1", "tripadvisor", IncomingReview(platform_review_id="t-2", rating=4)),
        ]
        request = ReviewSyncRequest(
            tenant_id="tenant-1",
            platform="tripadvisor",
            reviews=[
                IncomingReview(platform_review_id="t-1", rating=1),
                IncomingReview(platform_review_id="t-2", rating=4),
            ],
        )

        result = await service.sync(request)

        assert result.synced == 1
        assert result.drafts_created == 0

    @pytest.mark.asyncio
    async def test_rating_drop_alert(self, service, review_repo, mock_dispatcher):
        review_repo.list_ratings.side_effect = [
            [{"rating": 3}, {"rating": 3}],
            [{"rating": 4}, {"rating": 5}],
        ]

        with patch.object(review_sync.settings, "report_recipients", ""):
            alerted = await service.check_rating_drop("tenant-1", "google")

        assert alerted is True
        request = mock_dispatcher.send.call_args.args[0]
        assert request.email_type == "manager_alert"
        assert request.recipient_email == "gizzy@guest-glow.com"
        assert "google" in request.subject


class TestAutoDraft:

    @pytest.mark.asyncio
    async def test_high_rating_gets_no_draft(self, service, review_repo):
        review = stored_review("t", "google", IncomingReview(platform_review_id="g-9", rating=4))

        assert await service.auto_draft(review) is None
        review_repo.create_draft.assert_not_called()

    @pytest.mark.asyncio
    async def test_existing_response_gets_no_draft(self, service, review_repo):
        review_repo.has_response.return_value = True
        review = stored_review("t", "google", IncomingReview(platform_review_id="g-9", rating=1))

        assert await service.auto_draft(review) is None

    @pytest.mark.asyncio
    async def test_draft_is_logged(self, service, audit_repo):
        review = stored_review("t", "google", IncomingReview(platform_review_id="g-9", rating=3))

        response = await service.auto_draft(review)

        assert response.ai_model_used == AUTO_DRAFT_MODEL
        args = audit_repo.log_system_event.call_args.args
        assert args[2] == "response_auto_generated"
        assert args[3]["tone"] == "neutral"


class TestDraftActions:

    @pytest.mark.asyncio
    async def test_approve(self, service, review_repo):
        review_repo.get_response.return_value = draft()
        review_repo.update_response_status.return_value = draft(status=ResponseStatus.APPROVED)

        result = await service.approve_response("resp-1", actor="manager@hotel.example")

        assert result.status == ResponseStatus.APPROVED
        args = review_repo.update_response_status.call_args
        assert args.args == ("resp-1", ResponseStatus.APPROVED)
        assert args.kwargs["expected_status"] == ResponseStatus.DRAFT
        assert args.kwargs["actor"] == "manager@hotel.example"

    @pytest.mark.asyncio
    async def test_reject_after_approve_fails(self, service, review_repo):
        review_repo.get_response.return_value = draft(status=ResponseStatus.APPROVED)

        with pytest.raises(InvalidTransitionError):
            await service.reject_response("resp-1")
        review_repo.update_response_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_decision_loses(self, service, review_repo):
        review_repo.get_response.return_value = draft()
        review_repo.update_response_status.return_value = None

        with pytest.raises(InvalidTransitionError):
            await service.approve_response("resp-1")

    @pytest.mark.asyncio
    async def test_unknown_response(self, service, review_repo):
        review_repo.get_response.return_value = None

        with pytest.raises(ReviewResponseNotFoundError):
            await service.approve_response("missing")


class TestRegenerate:

    @pytest.mark.asyncio
    async def test_template_regeneration_bumps_version(self, service, review_repo):
        review_repo.get_response.return_value = draft(status=ResponseStatus.REJECTED)
        review_repo.latest_version.return_value = 2

        result = await service.regenerate_response("resp-1")

        assert result.response_version == 3
        assert result.ai_model_used == REGENERATED_TEMPLATE_MODEL
        assert result.response_text.startswith("Dear Kwame,")

    @pytest.mark.asyncio
    async def test_ai_regeneration(self, review_repo, audit_repo, mock_dispatcher, rating_service):
        ai_generator = MagicMock()
        ai_generator.model = "gpt-4o-2024-08-06"
        ai_generator.generate = AsyncMock(return_value=("Thank you, Kwame.", "ai"))
        service = ReviewService(
            review_repo, audit_repo, mock_dispatcher, rating_service, ai_generator, now=lambda: NOW
        )
        review_repo.get_response.return_value = draft()

        result = await service.regenerate_response("resp-1", use_ai=True)

        assert result.response_text == "Thank you, Kwame."
        assert result.ai_model_used == "gpt-4o-2024-08-06"
        assert result.response_version == 2

    @pytest.mark.asyncio
    async def test_approved_response_is_final(self, service, review_repo):
        review_repo.get_response.return_value = draft(status=ResponseStatus.APPROVED)

        with pytest.raises(InvalidTransitionError):
            await service.regenerate_response("resp-1")
        review_repo.create_draft.assert_not_called()
