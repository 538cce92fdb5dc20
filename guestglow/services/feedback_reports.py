"""
Scheduled Feedback Reports

Daily, weekly and monthly guest feedback summaries emailed to hotel
management. Metrics cover the window ending now:

- total feedback, average rating and star distribution
- top five issue categories, with those averaging below 3.5 flagged as
  improvement areas
- resolution rate and average hours from submission to resolution
"""
import asyncio
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from guestglow.config import get_settings
from guestglow.models.schemas import (
    CategoryStat,
    EmailPriority,
    EmailRequest,
    Feedback,
    FeedbackReport,
    FeedbackReportRequest,
    FeedbackReportResult,
    ReportDelivery,
    ReportType,
)
from guestglow.repositories.base_repository import utc_now
from guestglow.repositories.feedback_repository import FeedbackRepository
from guestglow.services import email_templates
from guestglow.services.email_dispatcher import EmailDispatcher
from guestglow.services.rating_goals import round_half_up
from guestglow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

TOP_CATEGORY_LIMIT = 5
IMPROVEMENT_THRESHOLD = 3.5
UNCATEGORIZED = "Uncategorized"


def report_window(
    report_type: ReportType,
    now: datetime,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> Tuple[datetime, datetime]:
    """Reporting period; an explicit start/end pair wins over the report type."""
    if start and end:
        if start > end:
            raise ValueError("start_date must be before end_date")
        return start, end

    if report_type == ReportType.MONTHLY:
        return now - relativedelta(months=1), now
    if report_type == ReportType.WEEKLY:
        return now - timedelta(days=7), now
    return now - timedelta(days=1), now


def build_feedback_report(feedback: List[Feedback]) -> FeedbackReport:
    total = len(feedback)
    if not total:
        return FeedbackReport()

    ratings = [item.rating for item in feedback]

    by_category: Dict[str, List[int]] = {}
    for item in feedback:
        by_category.setdefault(item.issue_category or UNCATEGORIZED, []).append(item.rating)

    categories = [
        CategoryStat(
            category=category,
            count=len(values),
            avg_rating=round_half_up(sum(values) / len(values), 2)
        )
        for category, values in by_category.items()
    ]
    # stable sort keeps first-seen order among equal counts
    top_categories = sorted(categories, key=lambda stat: stat.count, reverse=True)[:TOP_CATEGORY_LIMIT]

    resolved = [item for item in feedback if item.resolved_at]
    response_time_avg = 0
    if resolved:
        hours = [
            (item.resolved_at - item.created_at).total_seconds() / 3600 for item in resolved
        ]
        response_time_avg = int(round_half_up(sum(hours) / len(hours), 0))

    return FeedbackReport(
        total_feedback=total,
        average_rating=round_half_up(sum(ratings) / total, 2),
        five_star_count=ratings.count(5),
        four_star_count=ratings.count(4),
        three_star_count=ratings.count(3),
        two_star_count=ratings.count(2),
        one_star_count=ratings.count(1),
        top_categories=top_categories,
        improvement_areas=[
            f"{stat.category} ({stat.avg_rating}⭐ avg)"
            for stat in top_categories if stat.avg_rating < IMPROVEMENT_THRESHOLD
        ],
        response_time_avg=response_time_avg,
        resolution_rate=int(round_half_up(len(resolved) / total * 100, 0)),
    )


class FeedbackReportService:
    """Builds a feedback report and mails it to each recipient"""

    def __init__(
        self,
        feedback_repository: FeedbackRepository,
        email_dispatcher: EmailDispatcher,
        now: Callable[[], datetime] = utc_now
    ):
        self.feedback_repo = feedback_repository
        self.dispatcher = email_dispatcher
        self.now = now

    async def send_report(self, request: FeedbackReportRequest) -> FeedbackReportResult:
        """
        Raises:
            ValueError: inverted date range
        """
        now = self.now()
        start, end = report_window(request.report_type, now, request.start_date, request.end_date)

        feedback = await asyncio.to_thread(
            self.feedback_repo.list_created_between, request.tenant_id, start, end
        )
        report = build_feedback_report(feedback)
        logger.info(
            f"{request.report_type.value} report: {report.total_feedback} feedback, "
            f"avg {report.average_rating}, resolution {report.resolution_rate}%"
        )

        recipients = (
            request.recipients
            or settings.report_recipient_list
            or [settings.system_monitor_email]
        )
        subject = email_templates.feedback_report_subject(request.report_type.value, report, now)
        html = email_templates.feedback_report_email(request.report_type.value, report, start, end)
        tenant_slug = request.tenant_slug or settings.default_tenant_slug

        results = []
        for recipient in recipients:
            try:
                sent = await self.dispatcher.send(EmailRequest(
                    email_type=f"{request.report_type.value}_report",
                    recipient_email=recipient,
                    bcc_emails=[settings.system_monitor_email],
                    subject=subject,
                    html_content=html,
                    tenant_id=request.tenant_id,
                    tenant_slug=tenant_slug,
                    priority=EmailPriority.NORMAL
                ))
                results.append(ReportDelivery(recipient=recipient, success=True, email_id=sent.email_id))
            except Exception as e:
                logger.error(f"Failed to send {request.report_type.value} report to {recipient}: {e}")
                results.append(ReportDelivery(recipient=recipient, success=False, error=str(e)))

        return FeedbackReportResult(
            report_type=request.report_type,
            period_start=start,
            period_end=end,
            recipients_count=len(recipients),
            results=results,
            report=report
        )
