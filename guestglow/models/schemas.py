"""
Pydantic models for GuestGlow

This module contains the Pydantic schemas matching the Supabase tables used by
the feedback, review-response, approval and escalation workflows, plus the
request/response bodies of the public API.
"""
from datetime import date, datetime
from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field, ConfigDict, field_validator


# ============================================================================
# Enums
# ============================================================================

class FeedbackStatus(str, Enum):
    """Lifecycle of a guest feedback row"""
    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    AUTO_CLOSED = "auto_closed"


class ApprovalStatus(str, Enum):
    """Status of a risk assessment awaiting human sign-off"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ResponseStatus(str, Enum):
    """Status of a drafted reply to an external review"""
    DRAFT = "draft"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalAction(str, Enum):
    """Action granted by an approval token"""
    APPROVE = "approve"
    REJECT = "reject"


class SeverityLevel(str, Enum):
    """Risk severity tiers"""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class ResponsePriority(str, Enum):
    HIGH = "high"
    NORMAL = "normal"


class EmailPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class EscalationAction(str, Enum):
    """Action chosen by the SLA checker for one feedback row"""
    NONE = "none"
    ESCALATE = "escalation"
    AUTO_CLOSE = "auto_close"


def sentiment_for_rating(rating: int) -> Sentiment:
    """Sentiment tag derived from a star rating"""
    if rating >= 4:
        return Sentiment.POSITIVE
    if rating == 3:
        return Sentiment.NEUTRAL
    return Sentiment.NEGATIVE


def priority_for_rating(rating: int) -> ResponsePriority:
    """Response priority derived from a star rating"""
    return ResponsePriority.HIGH if rating <= 2 else ResponsePriority.NORMAL


# ============================================================================
# Database Models (matching Supabase tables)
# ============================================================================

class Feedback(BaseModel):
    """
    Guest feedback submitted through a QR-code form.

    Matches the `feedback` table. `escalation_level` records the highest
    escalation level that has actually been notified.
    """
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    tenant_id: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    room_number: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    feedback_text: Optional[str] = None
    issue_category: Optional[str] = None
    status: FeedbackStatus = FeedbackStatus.NEW
    created_at: datetime
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    escalation_level: Optional[int] = 0
    last_escalated_at: Optional[datetime] = None

    @field_validator("escalation_level", mode="before")
    @classmethod
    def _null_level_is_zero(cls, value):
        # rows created before the column had a default carry NULL
        return 0 if value is None else value


class ExternalReview(BaseModel):
    """Review ingested from Google, TripAdvisor or Booking.com"""
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    tenant_id: Optional[str] = None
    platform: str
    platform_review_id: str
    guest_name: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    review_text: Optional[str] = None
    review_date: Optional[datetime] = None
    platform_url: Optional[str] = None
    sentiment: Optional[Sentiment] = None
    response_required: bool = False


class ReviewResponse(BaseModel):
    """Generated or edited reply to an external review"""
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    tenant_id: Optional[str] = None
    external_review_id: str
    response_text: str
    status: ResponseStatus = ResponseStatus.DRAFT
    response_version: int = 1
    priority: ResponsePriority = ResponsePriority.NORMAL
    ai_model_used: Optional[str] = None
    created_at: Optional[datetime] = None


class ResponseApproval(BaseModel):
    """Risk assessment of a proposed response that needs human sign-off"""
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    tenant_id: Optional[str] = None
    feedback_id: Optional[str] = None
    generated_response: str
    response_type: str = "guest_response"
    risk_score: int = 0
    severity_level: SeverityLevel
    risk_factors: List[str] = Field(default_factory=list)
    risk_explanation: Optional[str] = None
    ai_confidence_score: Optional[float] = None
    requires_approval: bool = True
    status: ApprovalStatus = ApprovalStatus.PENDING
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ApprovalToken(BaseModel):
    """Single-use, expiring capability to approve or reject one approval"""
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: Optional[str] = None
    approval_id: str
    action: ApprovalAction
    token: str
    expires_at: datetime
    used_at: Optional[datetime] = None


class EscalationStat(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: Optional[str] = None
    feedback_id: str
    escalation_level: int
    manager_email: str
    manager_department: str
    escalated_at: Optional[datetime] = None
    was_acknowledged: bool = False
    was_auto_closed: bool = False


class ManagerContact(BaseModel):
    """Escalation recipient for one level"""
    model_config = ConfigDict(extra="ignore")

    escalation_level: int
    email_address: str
    name: Optional[str] = None
    department: Optional[str] = None
    title: Optional[str] = None


# ============================================================================
# API Models
# ============================================================================

class RiskAssessment(BaseModel):
    """Outcome of scanning feedback for risk keywords"""
    risk_score: int = Field(..., ge=0, le=100)
    severity_level: SeverityLevel
    requires_approval: bool
    risk_factors: List[str] = Field(default_factory=list)
    risk_explanation: str
    ai_confidence_score: float = Field(..., ge=0.7, le=1.0)


class RiskAssessmentRequest(BaseModel):
    feedback_text: str
    rating: int = Field(..., ge=1, le=5)
    response_text: str
    tenant_id: Optional[str] = None
    feedback_id: Optional[str] = None


class RiskAssessmentResponse(RiskAssessment):
    success: bool = True
    approval_id: Optional[str] = None


class ApprovalNotificationResult(BaseModel):
    success: bool = True
    approval_id: str
    recipients: List[str] = Field(default_factory=list)
    email_ids: List[str] = Field(default_factory=list)
    expires_at: datetime


class GenerateResponseRequest(BaseModel):
    """Response generation input (camelCase as sent by the dashboard)"""
    model_config = ConfigDict(populate_by_name=True)

    review_text: str = Field(..., alias="reviewText")
    rating: int = Field(..., ge=1, le=5)
    guest_name: Optional[str] = Field(None, alias="guestName")
    hotel_name: Optional[str] = Field(None, alias="hotelName")
    platform: Optional[str] = None
    is_external: bool = Field(True, alias="isExternal")


class GenerateResponseResult(BaseModel):
    success: bool = True
    response: str
    type: str
    source: str = "template"


class EmailRequest(BaseModel):
    """Request accepted by the email dispatcher"""
    feedback_id: Optional[str] = None
    email_type: str
    recipient_email: str
    cc_emails: List[str] = Field(default_factory=list)
    bcc_emails: List[str] = Field(default_factory=list)
    subject: str
    html_content: str
    tenant_id: Optional[str] = None
    tenant_slug: Optional[str] = None
    priority: EmailPriority = EmailPriority.NORMAL
    custom_note: Optional[str] = None


class EmailResult(BaseModel):
    success: bool = True
    email_id: str
    message: str = "Email sent successfully"
    sender: str
    recipient: str


class FeedbackSubmission(BaseModel):
    """Guest feedback form payload"""
    tenant_id: Optional[str] = None
    tenant_slug: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    room_number: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    feedback_text: Optional[str] = None
    issue_category: str = "General Experience"
    source: str = "qr_code"
    qr_code_id: Optional[str] = None
    location_name: Optional[str] = None


class FeedbackActionRequest(BaseModel):
    resolution_notes: Optional[str] = None
    actor: Optional[str] = None


class FeedbackSubmissionResult(BaseModel):
    success: bool = True
    feedback: Feedback
    confirmation_sent: bool = False
    message: Optional[str] = None


class SLACheckItem(BaseModel):
    feedback_id: str
    action: EscalationAction
    escalation_level: int
    hours_since_created: float
    escalation_hours: float
    recipient: Optional[str] = None


class SLACheckResult(BaseModel):
    success: bool = True
    message: str = "SLA monitoring completed successfully"
    checked_count: int = 0
    actions_taken: int = 0
    results: List[SLACheckItem] = Field(default_factory=list)


class IncomingReview(BaseModel):
    """Review as delivered by a platform scraper"""
    platform_review_id: str
    guest_name: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    review_text: Optional[str] = None
    review_date: Optional[datetime] = None
    platform_url: Optional[str] = None
    verified_stay: bool = False


class ReviewSyncRequest(BaseModel):
    tenant_id: str
    platform: str
    reviews: List[IncomingReview] = Field(default_factory=list)


class ReviewSyncResult(BaseModel):
    success: bool = True
    platform: str
    synced: int = 0
    skipped: int = 0
    drafts_created: int = 0
    rating_drop_alert: bool = False


class RatingGoalRequest(BaseModel):
    tenant_id: str
    current_rating: float = Field(..., ge=1, le=5)
    target_rating: float = Field(..., ge=1, lt=5)
    target_date: date
    current_review_count: int = Field(..., ge=0)
    platform: Optional[str] = None


class RatingGoalCalculation(BaseModel):
    current_rating: float
    target_rating: float
    rating_uplift: float
    target_date: str
    days_remaining: int
    reviews_needed: int
    five_star_reviews_needed: int
    daily_target: float
    weekly_target: float
    monthly_target: float
    success_probability: str
    recommendations: List[str] = Field(default_factory=list)


class DailyProgressRequest(BaseModel):
    tenant_id: str
    date: Optional[str] = None
    send_briefing: bool = True


class DailyRatingProgress(BaseModel):
    tenant_id: str
    progress_date: str
    overall_rating: Optional[float] = None
    google_rating: Optional[float] = None
    booking_rating: Optional[float] = None
    tripadvisor_rating: Optional[float] = None
    total_reviews: int = 0
    five_star_count: int = 0
    four_star_count: int = 0
    three_star_count: int = 0
    two_star_count: int = 0
    one_star_count: int = 0
    reviews_added_today: int = 0
    rating_change: float = 0.0
    goal_progress_percentage: float = 0.0
    on_track: bool = True


class DailyProgressResult(BaseModel):
    success: bool = True
    progress: DailyRatingProgress
    recommendations: List[str] = Field(default_factory=list)
    briefings_sent: int = 0


class ReportType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class CategoryStat(BaseModel):
    category: str
    count: int
    avg_rating: float


class FeedbackReport(BaseModel):
    """Guest feedback metrics over one reporting window"""
    total_feedback: int = 0
    average_rating: float = 0.0
    five_star_count: int = 0
    four_star_count: int = 0
    three_star_count: int = 0
    two_star_count: int = 0
    one_star_count: int = 0
    top_categories: List[CategoryStat] = Field(default_factory=list)
    improvement_areas: List[str] = Field(default_factory=list)
    response_time_avg: int = 0  # hours from submission to resolution
    resolution_rate: int = 0  # percent


class FeedbackReportRequest(BaseModel):
    report_type: ReportType = ReportType.DAILY
    tenant_id: Optional[str] = None
    tenant_slug: Optional[str] = None
    recipients: Optional[List[str]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ReportDelivery(BaseModel):
    recipient: str
    success: bool
    email_id: Optional[str] = None
    error: Optional[str] = None


class FeedbackReportResult(BaseModel):
    success: bool = True
    report_type: ReportType
    period_start: datetime
    period_end: datetime
    recipients_count: int = 0
    results: List[ReportDelivery] = Field(default_factory=list)
    report: FeedbackReport


class ErrorResponse(BaseModel):
    """Standard error response"""
    success: bool = False
    error: str
    details: Optional[Dict[str, Any]] = None
