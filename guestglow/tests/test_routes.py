"""
API route tests

Services are replaced through FastAPI dependency overrides; these tests cover
request validation, status codes and error mapping.
"""
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

from guestglow import dependencies
from guestglow.main import app
from guestglow.models.schemas import (
    ApprovalStatus,
    EscalationAction,
    FeedbackReport,
    FeedbackReportResult,
    FeedbackStatus,
    FeedbackSubmissionResult,
    ReportDelivery,
    ReportType,
    ResponseStatus,
    RiskAssessment,
    SeverityLevel,
    SLACheckItem,
    SLACheckResult,
)
from guestglow.models.transitions import ApprovalEvent, FeedbackEvent, InvalidTransitionError
from guestglow.services.approval_workflow import ApprovalNotFoundError, RedemptionOutcome
from guestglow.services.email_dispatcher import EmailDeliveryError
from guestglow.services.feedback_service import FeedbackNotFoundError
from guestglow.tests.factories import BASE_TIME, make_feedback
from guestglow.utils import auth

client = TestClient(app)


@pytest.fixture
def override():
    """Register a dependency override for the duration of one test"""
    def _override(provider, instance):
        app.dependency_overrides[provider] = lambda: instance
        return instance

    yield _override
    app.dependency_overrides.clear()


class TestAuthentication:

    def test_bypassed_without_configured_keys(self):
        response = client.post("/api/v1/responses/generate", json={"reviewText": "Nice", "rating": 5})
        assert response.status_code == 200

    def test_missing_credential(self):
        with patch.object(auth.settings, "allowed_api_keys", "secret-1"):
            response = client.post("/api/v1/responses/generate", json={"reviewText": "Nice", "rating": 5})

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_wrong_credential(self):
        with patch.object(auth.settings, "allowed_api_keys", "secret-1"):
            response = client.post(
                "/api/v1/responses/generate",
                json={"reviewText": "Nice", "rating": 5},
                headers={"Authorization": "Bearer nope"}
            )

        assert response.status_code == 401

    def test_non_bearer_scheme(self):
        with patch.object(auth.settings, "allowed_api_keys", "secret-1"):
            response = client.post(
                "/api/v1/responses/generate",
                json={"reviewText": "Nice", "rating": 5},
                headers={"Authorization": "Basic secret-1"}
            )

        assert response.status_code == 401
        assert response.json()["detail"].startswith("Missing credentials")

    def test_bearer_scheme_in_openapi(self):
        schemes = client.get("/openapi.json").json()["components"]["securitySchemes"]

        assert schemes["HTTPBearer"]["scheme"] == "bearer"

    def test_valid_credential(self):
        with patch.object(auth.settings, "allowed_api_keys", "secret-1, secret-2"):
            response = client.post(
                "/api/v1/responses/generate",
                json={"reviewText": "Nice", "rating": 5},
                headers={"Authorization": "Bearer secret-2"}
            )

        assert response.status_code == 200

    def test_production_requires_keys(self):
        with patch.object(auth.settings, "fastapi_env", "production"):
            response = client.post("/api/v1/responses/generate", json={"reviewText": "Nice", "rating": 5})

        assert response.status_code == 401

    def test_approval_links_need_no_credential(self, override):
        workflow = override(dependencies.get_approval_workflow, MagicMock())
        workflow.redeem = AsyncMock(return_value=RedemptionOutcome(400, "<html>bad</html>"))

        with patch.object(auth.settings, "allowed_api_keys", "secret-1"):
            response = client.get("/api/v1/approvals/action?token=t&action=approve")

        assert response.status_code == 400


class TestResponses:

    def test_generate_template(self):
        response = client.post(
            "/api/v1/responses/generate",
            json={"reviewText": "Great room, wifi was slow", "rating": 4, "guestName": "Efua"}
        )

        data = response.json()
        assert response.status_code == 200
        assert data["type"] == "positive"
        assert data["source"] == "template"
        assert data["response"].startswith("Dear Efua,")
        assert "WiFi connectivity" in data["response"]

    def test_empty_review_text(self):
        response = client.post("/api/v1/responses/generate", json={"reviewText": "  ", "rating": 4})
        assert response.status_code == 400

    def test_rating_out_of_range(self):
        response = client.post("/api/v1/responses/generate", json={"reviewText": "x", "rating": 6})
        assert response.status_code == 422

    def test_generate_ai(self, override):
        generator = override(dependencies.get_ai_generator, MagicMock())
        generator.generate = AsyncMock(return_value=("Thanks Efua!", "ai"))

        response = client.post(
            "/api/v1/responses/generate-ai",
            json={"reviewText": "Loved it", "rating": 5, "isExternal": False}
        )

        assert response.json() == {
            "success": True, "response": "Thanks Efua!", "type": "positive", "source": "ai"
        }
        assert generator.generate.await_args.kwargs["is_external"] is False


class TestRisk:

    def test_assess(self, override):
        assessor = override(dependencies.get_risk_assessor, MagicMock())
        assessor.assess = AsyncMock(return_value=(
            RiskAssessment(
                risk_score=30,
                severity_level=SeverityLevel.HIGH,
                requires_approval=True,
                risk_factors=["Legal threat detected"],
                risk_explanation="Guest has made explicit legal threats.",
                ai_confidence_score=0.7,
            ),
            "approval-1"
        ))

        response = client.post("/api/v1/risk/assess", json={
            "feedback_text": "I will sue you",
            "rating": 1,
            "response_text": "We are sorry.",
            "feedback_id": "fb-1",
        })

        data = response.json()
        assert response.status_code == 200
        assert data["success"] is True
        assert data["severity_level"] == "HIGH"
        assert data["approval_id"] == "approval-1"

    def test_assess_failure(self, override):
        assessor = override(dependencies.get_risk_assessor, MagicMock())
        assessor.assess = AsyncMock(side_effect=RuntimeError("db down"))

        response = client.post("/api/v1/risk/assess", json={
            "feedback_text": "x", "rating": 1, "response_text": "y",
        })

        assert response.status_code == 500
        assert response.json()["detail"] == "db down"


class TestApprovals:

    def test_notify_unknown(self, override):
        workflow = override(dependencies.get_approval_workflow, MagicMock())
        workflow.notify = AsyncMock(side_effect=ApprovalNotFoundError("Approval not found: a-9"))

        response = client.post("/api/v1/approvals/a-9/notify")

        assert response.status_code == 404

    def test_notify_decided(self, override):
        workflow = override(dependencies.get_approval_workflow, MagicMock())
        workflow.notify = AsyncMock(side_effect=InvalidTransitionError(
            "approval", ApprovalStatus.APPROVED, ApprovalEvent.APPROVE
        ))

        response = client.post("/api/v1/approvals/a-1/notify")

        assert response.status_code == 409

    def test_redeem_returns_html(self, override):
        workflow = override(dependencies.get_approval_workflow, MagicMock())
        workflow.redeem = AsyncMock(return_value=RedemptionOutcome(200, "<html>Response APPROVED</html>"))

        response = client.get("/api/v1/approvals/action", params={"token": "tok", "action": "approve"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Response APPROVED" in response.text
        workflow.redeem.assert_awaited_once_with("tok", "approve")

    def test_redeem_missing_approval(self, override):
        workflow = override(dependencies.get_approval_workflow, MagicMock())
        workflow.redeem = AsyncMock(side_effect=ApprovalNotFoundError("gone"))

        response = client.get("/api/v1/approvals/action", params={"token": "tok", "action": "approve"})

        assert response.status_code == 404
        assert "Not Found" in response.text

    def test_redeem_unexpected_error(self, override):
        workflow = override(dependencies.get_approval_workflow, MagicMock())
        workflow.redeem = AsyncMock(side_effect=RuntimeError("db down"))

        response = client.get("/api/v1/approvals/action", params={"token": "tok", "action": "reject"})

        assert response.status_code == 500
        assert "Processing Error" in response.text


class TestSLA:

    def test_check(self, override):
        service = override(dependencies.get_escalation_service, MagicMock())
        service.check_sla = AsyncMock(return_value=SLACheckResult(
            checked_count=1,
            actions_taken=1,
            results=[SLACheckItem(
                feedback_id="fb-1",
                action=EscalationAction.ESCALATE,
                escalation_level=1,
                hours_since_created=0.05,
                escalation_hours=0.05,
                recipient="guestrelations@hotel.example",
            )],
        ))

        data = client.post("/api/v1/sla/check").json()

        assert data["actions_taken"] == 1
        assert data["results"][0]["action"] == "escalation"

    def test_check_failure(self, override):
        service = override(dependencies.get_escalation_service, MagicMock())
        service.check_sla = AsyncMock(side_effect=RuntimeError("db down"))

        response = client.post("/api/v1/sla/check")

        assert response.status_code == 500
        assert response.json()["detail"] == "SLA monitoring failed: db down"


class TestFeedback:

    def test_submit(self, override):
        service = override(dependencies.get_feedback_service, MagicMock())
        service.submit = AsyncMock(return_value=FeedbackSubmissionResult(
            feedback=make_feedback(), confirmation_sent=True
        ))

        response = client.post("/api/v1/feedback", json={"rating": 2, "guest_email": "ama@example.com"})

        assert response.status_code == 201
        assert response.json()["feedback"]["status"] == "new"

    def test_acknowledge(self, override):
        service = override(dependencies.get_feedback_service, MagicMock())
        service.acknowledge = AsyncMock(return_value=make_feedback(status="acknowledged"))

        response = client.post("/api/v1/feedback/fb-1/acknowledge", json={"actor": "front-desk"})

        assert response.status_code == 200
        assert response.json()["status"] == FeedbackStatus.ACKNOWLEDGED.value
        feedback_id, request = service.acknowledge.await_args.args
        assert feedback_id == "fb-1"
        assert request.actor == "front-desk"

    def test_resolve_without_body(self, override):
        service = override(dependencies.get_feedback_service, MagicMock())
        service.resolve = AsyncMock(return_value=make_feedback(status="resolved"))

        response = client.post("/api/v1/feedback/fb-1/resolve")

        assert response.status_code == 200

    def test_invalid_transition(self, override):
        service = override(dependencies.get_feedback_service, MagicMock())
        service.start = AsyncMock(side_effect=InvalidTransitionError(
            "feedback", FeedbackStatus.NEW, FeedbackEvent.START
        ))

        response = client.post("/api/v1/feedback/fb-1/start")

        assert response.status_code == 409

    def test_unknown_feedback(self, override):
        service = override(dependencies.get_feedback_service, MagicMock())
        service.resolve = AsyncMock(side_effect=FeedbackNotFoundError("Feedback not found: x"))

        response = client.post("/api/v1/feedback/x/resolve")

        assert response.status_code == 404


class TestRatings:

    def test_goal_must_raise_rating(self, override):
        service = override(dependencies.get_rating_service, MagicMock())

        response = client.post("/api/v1/ratings/goals", json={
            "tenant_id": "t",
            "current_rating": 4.5,
            "target_rating": 4.5,
            "target_date": "2030-01-01",
            "current_review_count": 10,
        })

        assert response.status_code == 400
        service.set_goal.assert_not_called()

    def test_goal_in_the_past(self, override):
        service = override(dependencies.get_rating_service, MagicMock())
        service.set_goal = AsyncMock(side_effect=ValueError("target_date must be in the future"))

        response = client.post("/api/v1/ratings/goals", json={
            "tenant_id": "t",
            "current_rating": 4.0,
            "target_rating": 4.5,
            "target_date": "2020-01-01",
            "current_review_count": 10,
        })

        assert response.status_code == 400
        assert response.json()["detail"] == "target_date must be in the future"

    def test_target_of_five_is_rejected(self, override):
        override(dependencies.get_rating_service, MagicMock())

        response = client.post("/api/v1/ratings/goals", json={
            "tenant_id": "t",
            "current_rating": 4.0,
            "target_rating": 5.0,
            "target_date": "2030-01-01",
            "current_review_count": 10,
        })

        assert response.status_code == 422


class TestEmails:

    def test_send_failure(self, override):
        dispatcher = override(dependencies.get_email_dispatcher, MagicMock())
        dispatcher.send = AsyncMock(side_effect=EmailDeliveryError("RESEND_API_KEY is not configured"))

        response = client.post("/api/v1/emails/send", json={
            "email_type": "manager_alert",
            "recipient_email": "gm@hotel.example",
            "subject": "Hi",
            "html_content": "<p>Hi</p>",
        })

        assert response.status_code == 500
        assert "RESEND_API_KEY" in response.json()["detail"]


class TestReviews:

    def test_regenerate_approved(self, override):
        service = override(dependencies.get_review_service, MagicMock())
        service.regenerate_response = AsyncMock(side_effect=InvalidTransitionError(
            "review response", ResponseStatus.APPROVED, ApprovalEvent.REJECT
        ))

        response = client.post("/api/v1/reviews/responses/resp-1/regenerate?use_ai=true")

        assert response.status_code == 409
        service.regenerate_response.assert_called_once_with("resp-1", True)


class TestReports:

    def test_feedback_report(self, override):
        service = override(dependencies.get_feedback_report_service, MagicMock())
        service.send_report = AsyncMock(return_value=FeedbackReportResult(
            report_type=ReportType.WEEKLY,
            period_start=BASE_TIME - timedelta(days=7),
            period_end=BASE_TIME,
            recipients_count=1,
            results=[ReportDelivery(recipient="gm@hotel.example", success=True, email_id="email-1")],
            report=FeedbackReport(total_feedback=3, average_rating=4.33),
        ))

        response = client.post("/api/v1/reports/feedback", json={"report_type": "weekly"})

        assert response.status_code == 200
        data = response.json()
        assert data["report"]["total_feedback"] == 3
        assert data["results"][0]["email_id"] == "email-1"
        assert service.send_report.call_args.args[0].report_type == ReportType.WEEKLY

    def test_unknown_report_type(self, override):
        override(dependencies.get_feedback_report_service, MagicMock())

        response = client.post("/api/v1/reports/feedback", json={"report_type": "hourly"})

        assert response.status_code == 422

    def test_inverted_range(self, override):
        service = override(dependencies.get_feedback_report_service, MagicMock())
        service.send_report = AsyncMock(side_effect=ValueError("start_date must be before end_date"))

        response = client.post("/api/v1/reports/feedback", json={"report_type": "daily"})

        assert response.status_code == 400
