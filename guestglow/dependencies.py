"""
FastAPI dependency providers

Repositories and services are built once per process. Tests replace them
through `app.dependency_overrides`.
"""
from functools import lru_cache

from guestglow.repositories import (
    ApprovalRepository,
    AuditRepository,
    EscalationRepository,
    FeedbackRepository,
    RatingRepository,
    ReviewRepository,
)
from guestglow.services.ai_response_generator import AIResponseGenerator
from guestglow.services.approval_workflow import ApprovalWorkflow
from guestglow.services.email_dispatcher import EmailDispatcher
from guestglow.services.escalation import EscalationService
from guestglow.services.feedback_reports import FeedbackReportService
from guestglow.services.feedback_service import FeedbackService
from guestglow.services.rating_goals import RatingService
from guestglow.services.review_sync import ReviewService
from guestglow.services.risk_assessor import RiskAssessorService


@lru_cache()
def get_approval_repository() -> ApprovalRepository:
    return ApprovalRepository()


@lru_cache()
def get_audit_repository() -> AuditRepository:
    return AuditRepository()


@lru_cache()
def get_escalation_repository() -> EscalationRepository:
    return EscalationRepository()


@lru_cache()
def get_feedback_repository() -> FeedbackRepository:
    return FeedbackRepository()


@lru_cache()
def get_rating_repository() -> RatingRepository:
    return RatingRepository()


@lru_cache()
def get_review_repository() -> ReviewRepository:
    return ReviewRepository()


@lru_cache()
def get_email_dispatcher() -> EmailDispatcher:
    return EmailDispatcher(get_audit_repository())


@lru_cache()
def get_ai_generator() -> AIResponseGenerator:
    return AIResponseGenerator()


@lru_cache()
def get_risk_assessor() -> RiskAssessorService:
    return RiskAssessorService(get_approval_repository())


@lru_cache()
def get_approval_workflow() -> ApprovalWorkflow:
    return ApprovalWorkflow(
        get_approval_repository(),
        get_feedback_repository(),
        get_email_dispatcher()
    )


@lru_cache()
def get_escalation_service() -> EscalationService:
    return EscalationService(
        get_feedback_repository(),
        get_escalation_repository(),
        get_audit_repository(),
        get_email_dispatcher()
    )


@lru_cache()
def get_feedback_service() -> FeedbackService:
    return FeedbackService(
        get_feedback_repository(),
        get_escalation_repository(),
        get_audit_repository(),
        get_email_dispatcher()
    )


@lru_cache()
def get_rating_service() -> RatingService:
    return RatingService(
        get_rating_repository(),
        get_review_repository(),
        get_email_dispatcher()
    )


@lru_cache()
def get_review_service() -> ReviewService:
    return ReviewService(
        get_review_repository(),
        get_audit_repository(),
        get_email_dispatcher(),
        get_rating_service(),
        get_ai_generator()
    )


@lru_cache()
def get_feedback_report_service() -> FeedbackReportService:
    return FeedbackReportService(
        get_feedback_repository(),
        get_email_dispatcher()
    )
