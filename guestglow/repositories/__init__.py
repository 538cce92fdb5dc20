"""
Repositories package for database operations

Provides repository classes for CRUD operations on:
- feedback table (FeedbackRepository)
- response_approvals / approval_tokens tables (ApprovalRepository)
- escalation_stats and routing configuration (EscalationRepository)
- communication_logs / system_logs tables (AuditRepository)
- external_reviews / review_responses tables (ReviewRepository)
- rating_goals / daily_rating_progress tables (RatingRepository)
"""
from guestglow.repositories.approval_repository import ApprovalRepository
from guestglow.repositories.audit_repository import AuditRepository
from guestglow.repositories.escalation_repository import EscalationRepository
from guestglow.repositories.feedback_repository import FeedbackRepository
from guestglow.repositories.rating_repository import RatingRepository
from guestglow.repositories.review_repository import ReviewRepository

__all__ = [
    "ApprovalRepository",
    "AuditRepository",
    "EscalationRepository",
    "FeedbackRepository",
    "RatingRepository",
    "ReviewRepository",
]
