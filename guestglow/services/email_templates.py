"""
HTML bodies for outbound email and the approval landing pages.

All user-supplied values are escaped before interpolation.
"""
from datetime import datetime
from html import escape
from typing import Iterable, List, Optional
from urllib.parse import quote

from guestglow.models.schemas import (
    ApprovalAction,
    DailyRatingProgress,
    Feedback,
    FeedbackReport,
    ManagerContact,
    ResponseApproval,
)

APPROVAL_FOOTER = "GuestGlow Human-in-Loop Approval System"


def _e(value) -> str:
    return escape(str(value)) if value is not None else ""


def _guest(feedback: Optional[Feedback]) -> str:
    return _e(feedback.guest_name) if feedback and feedback.guest_name else "Anonymous"


def _room(feedback: Optional[Feedback]) -> str:
    return _e(feedback.room_number) if feedback and feedback.room_number else "N/A"


def _list_items(items: Iterable[str]) -> str:
    return "".join(f"<li>{_e(item)}</li>" for item in items)


def _paragraphs(text: str) -> str:
    blocks = [block.strip() for block in (text or "").split("\n\n") if block.strip()]
    return "".join(f"<p>{_e(block)}</p>" for block in blocks)


# ============================================================================
# Approval workflow
# ============================================================================

def approval_request_subject(approval: ResponseApproval) -> str:
    return f"🚨 HIGH RISK Response Requires Approval - {', '.join(approval.risk_factors)}"


def approval_request_email(
    approval: ResponseApproval,
    feedback: Optional[Feedback],
    approve_link: str,
    reject_link: str,
    ttl_hours: int
) -> str:
    rating = feedback.rating if feedback else "N/A"
    comment = _e(feedback.feedback_text) if feedback and feedback.feedback_text else "No comment provided"
    confidence = round((approval.ai_confidence_score or 0) * 100)

    return f"""
<div style="max-width: 600px; font-family: Arial, sans-serif;">
  <div style="background: #dc2626; color: white; padding: 15px; border-radius: 8px 8px 0 0;">
    <h2 style="margin: 0;">⚠️ HUMAN APPROVAL REQUIRED</h2>
    <p style="margin: 5px 0 0 0;">High-risk response detected - manual review needed</p>
  </div>
  <div style="background: #fef2f2; border-left: 4px solid #dc2626; padding: 15px;">
    <h3 style="color: #dc2626; margin-top: 0;">WHY APPROVAL IS REQUIRED:</h3>
    <p style="font-weight: bold; color: #991b1b;">{_e(approval.risk_explanation)}</p>
    <ul style="color: #7f1d1d;">{_list_items(approval.risk_factors)}</ul>
  </div>
  <div style="background: #f9f9f9; padding: 15px;">
    <p><strong>Risk Score:</strong> {approval.risk_score}/100</p>
    <p><strong>AI Confidence:</strong> {confidence}%</p>
    <p><strong>Severity:</strong> {approval.severity_level.value}</p>
  </div>
  <div style="margin: 20px 0;">
    <h3>📝 Original Guest Feedback:</h3>
    <p><strong>Guest:</strong> {_guest(feedback)} | <strong>Room:</strong> {_room(feedback)} | <strong>Rating:</strong> {rating}/5</p>
    <p>{comment}</p>
  </div>
  <div style="margin: 20px 0;">
    <h3>🤖 Proposed Response:</h3>
    <div style="background: #eff6ff; padding: 15px; border-left: 4px solid #3b82f6;">{_paragraphs(approval.generated_response)}</div>
  </div>
  <div style="text-align: center; margin: 30px 0;">
    <a href="{_e(approve_link)}" style="background: #16a34a; color: white; padding: 15px 30px; text-decoration: none; border-radius: 8px; margin: 0 10px;">✅ APPROVE &amp; SEND</a>
    <a href="{_e(reject_link)}" style="background: #dc2626; color: white; padding: 15px 30px; text-decoration: none; border-radius: 8px; margin: 0 10px;">❌ REJECT (No Response)</a>
  </div>
  <div style="background: #f3f4f6; padding: 15px; color: #6b7280; font-size: 12px;">
    <p><strong>Expires:</strong> {ttl_hours} hours from now</p>
    <p><strong>Feedback ID:</strong> {_e(approval.feedback_id)}</p>
    <p>If no action is taken within {ttl_hours} hours, no response will be sent to the guest.</p>
  </div>
</div>"""


_PAGE_STYLE = """
body { font-family: Arial, sans-serif; margin: 0; padding: 20px; background: #f5f5f5; }
.container { max-width: 600px; margin: 0 auto; background: white; border-radius: 8px; overflow: hidden; }
.header { color: white; padding: 30px; text-align: center; }
.content { padding: 30px; }
.footer { background: #f3f4f6; padding: 20px; text-align: center; color: #6b7280; font-size: 14px; }
"""


def approval_success_page(
    action: ApprovalAction,
    approval: ResponseApproval,
    feedback: Optional[Feedback],
    processed_at: datetime
) -> str:
    approved = action == ApprovalAction.APPROVE
    action_text = "APPROVED" if approved else "REJECTED"
    color = "#16a34a" if approved else "#dc2626"
    icon = "✅" if approved else "❌"
    rating = feedback.rating if feedback else "N/A"
    comment = _e(feedback.feedback_text) if feedback and feedback.feedback_text else "No comment"
    outcome = (
        "The response has been approved and will be sent to the guest."
        if approved else
        "The response has been rejected and will NOT be sent to the guest."
    )

    return f"""<!DOCTYPE html>
<html>
<head>
  <title>Response {action_text}</title>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>{_PAGE_STYLE}</style>
</head>
<body>
  <div class="container">
    <div class="header" style="background: {color};">
      <h1>{icon} Response {action_text}</h1>
      <p>Your decision has been processed successfully</p>
    </div>
    <div class="content">
      <h3>Feedback Details:</h3>
      <p><strong>Guest:</strong> {_guest(feedback)}</p>
      <p><strong>Room:</strong> {_room(feedback)}</p>
      <p><strong>Rating:</strong> {rating}/5</p>
      <p><strong>Comment:</strong> {comment}</p>
      <h3>Risk Assessment:</h3>
      <p>{_e(approval.risk_explanation)}</p>
      <p style="color: {color};"><strong>{icon} {outcome}</strong></p>
      <p>Processed at: {processed_at.strftime("%Y-%m-%d %H:%M:%S %Z")}</p>
    </div>
    <div class="footer">
      <p>{APPROVAL_FOOTER}</p>
      <p>This action has been logged for audit purposes.</p>
    </div>
  </div>
</body>
</html>"""


def approval_error_page(title: str, message: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <title>{_e(title)}</title>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>{_PAGE_STYLE}</style>
</head>
<body>
  <div class="container">
    <div class="header" style="background: #dc2626;">
      <h1>🚫 {_e(title)}</h1>
    </div>
    <div class="content" style="text-align: center;">
      <p>{_e(message)}</p>
      <p>If you believe this is an error, please contact the system administrator.</p>
    </div>
    <div class="footer">
      <p>{APPROVAL_FOOTER}</p>
    </div>
  </div>
</body>
</html>"""


def guest_response_email(guest_name: Optional[str], response_text: str, hotel_name: str) -> str:
    """Approved reply delivered to the guest"""
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <p>Dear {_e(guest_name or "Valued Guest")},</p>
  {_paragraphs(response_text)}
  <p style="color: #6b7280; font-size: 12px;">{_e(hotel_name)} Guest Relations</p>
</div>"""


# ============================================================================
# SLA escalation
# ============================================================================

def escalation_subject(feedback: Feedback, hours_since_created: float) -> str:
    return (
        f"🚨 SLA ESCALATION: Unresolved Feedback - Room {feedback.room_number or 'N/A'} "
        f"({hours_since_created:.2f}h overdue)"
    )


def escalation_email(
    feedback: Feedback,
    level: int,
    manager_title: str,
    hours_since_created: float,
    escalation_hours: float
) -> str:
    overdue = max(0.0, hours_since_created - escalation_hours)
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; border: 3px solid #dc2626; border-radius: 8px; background: #fef2f2;">
  <h1 style="color: #dc2626;">🚨 SLA ESCALATION - Level {level} ({_e(manager_title)})</h1>
  <div style="background: white; padding: 15px; border-radius: 6px;">
    <h2 style="margin-top: 0;">Overdue Feedback Details</h2>
    <p><strong>Guest:</strong> {_guest(feedback)}</p>
    <p><strong>Room:</strong> {_room(feedback)}</p>
    <p><strong>Rating:</strong> {feedback.rating}/5 stars</p>
    <p><strong>Category:</strong> {_e(feedback.issue_category)}</p>
    <p><strong>Time Since Submitted:</strong> {hours_since_created:.2f} hours (SLA: {escalation_hours}h)</p>
    <p><strong>Current Status:</strong> {feedback.status.value.upper()}</p>
  </div>
  <div style="background: #fee2e2; padding: 15px; border-radius: 6px; margin-top: 20px;">
    <h3 style="color: #dc2626; margin-top: 0;">IMMEDIATE ACTION REQUIRED</h3>
    <p style="color: #dc2626; margin: 0;">This feedback has exceeded the {escalation_hours}-hour SLA by {overdue:.1f} hours.</p>
  </div>
  <p style="color: #6b7280; font-size: 12px; text-align: center;">Feedback ID: {_e(feedback.id)}</p>
</div>"""


def auto_close_subject(feedback: Feedback) -> str:
    return f"🔒 AUTO-CLOSED: Feedback {feedback.room_number or feedback.id} - No Manager Response"


def auto_close_email(feedback: Feedback, hours_since_created: float) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1 style="color: #6b7280; text-align: center;">🔒 FEEDBACK AUTO-CLOSED</h1>
  <p style="color: #6b7280;">This feedback has been automatically closed due to no response from management.
  It will be included in the weekly non-response statistics.</p>
  <div style="background: #f9fafb; padding: 15px; border-radius: 6px;">
    <p><strong>Guest:</strong> {_guest(feedback)}</p>
    <p><strong>Room:</strong> {_room(feedback)}</p>
    <p><strong>Rating:</strong> {feedback.rating}/5 stars</p>
    <p><strong>Total Time:</strong> {hours_since_created:.1f} hours</p>
    <p><strong>Escalation Path:</strong> Guest Relations → GM → Auto-Closed</p>
  </div>
  <p style="color: #6b7280; font-size: 12px; text-align: center;">Feedback ID: {_e(feedback.id)}</p>
</div>"""


# ============================================================================
# Guest submission
# ============================================================================

def guest_confirmation_email(feedback: Feedback, hotel_name: str) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h2>Thank you for your feedback</h2>
  <p>Dear {_e(feedback.guest_name or "Valued Guest")},</p>
  <p>We have received your {feedback.rating}-star feedback and our guest relations team will review it shortly.</p>
  <p>Reference: {_e(feedback.id)}</p>
  <p>Warm regards,<br>{_e(hotel_name)} Team</p>
</div>"""


SATISFACTION_CHOICES = (
    ("Very Satisfied", "#10b981", "I am VERY SATISFIED with how my feedback was handled."),
    ("Satisfied", "#3b82f6", "I am SATISFIED with how my feedback was handled."),
    ("Neutral", "#f59e0b", "I am NEUTRAL about how my feedback was handled."),
    ("Dissatisfied", "#ef4444", "I am DISSATISFIED with how my feedback was handled. Here's why:"),
)


def satisfaction_followup_subject(hotel_name: str) -> str:
    return f"How did we do? Your feedback resolution follow-up - {hotel_name}"


def satisfaction_followup_email(feedback: Feedback, hotel_name: str, reply_address: str) -> str:
    buttons = "".join(
        f'<a href="mailto:{_e(reply_address)}?subject={quote(f"Satisfaction Survey - {label}")}'
        f'&body={quote(f"Feedback ID: {feedback.id}")}%0D%0A%0D%0A{quote(body)}" '
        f'style="display: inline-block; background: {color}; color: white; padding: 12px 20px; '
        f'text-decoration: none; border-radius: 6px; margin: 5px;">{label}</a>'
        for label, color, body in SATISFACTION_CHOICES
    )
    resolved = (
        f"<p><strong>Resolved:</strong> {feedback.resolved_at:%Y-%m-%d}</p>"
        if feedback.resolved_at else ""
    )
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1>Thank you for your feedback!</h1>
  <p>Dear {_e(feedback.guest_name or "Valued Guest")}, we wanted to follow up on your recent experience.</p>
  <div style="background: #ffffff; padding: 20px; border-left: 4px solid #3b82f6;">
    <h2>Your Original Feedback</h2>
    <p><strong>Date:</strong> {feedback.created_at:%Y-%m-%d}</p>
    <p><strong>Room:</strong> {_e(feedback.room_number or "Not specified")}</p>
    <p><strong>Rating:</strong> {feedback.rating}/5 stars</p>
    <p><strong>Category:</strong> {_e(feedback.issue_category or "General")}</p>
    {resolved}
  </div>
  <div style="background: #f0f9ff; padding: 20px; text-align: center;">
    <h2>How satisfied are you with our response?</h2>
    {buttons}
  </div>
  <p>Any further comments are welcome at <a href="mailto:{_e(reply_address)}">{_e(reply_address)}</a>.</p>
  <p><strong>The {_e(hotel_name)} Guest Relations Team</strong></p>
  <p style="color: #9ca3af; font-size: 12px;">Feedback ID: {_e(feedback.id)}</p>
</div>"""


# ============================================================================
# Reviews & ratings
# ============================================================================

def rating_drop_email(platform: str, recent_average: float, historical_average: float) -> str:
    drop = historical_average - recent_average
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; border: 2px solid #dc2626; border-radius: 8px;">
  <h1 style="color: #dc2626;">📉 Rating Drop Alert: {_e(platform)}</h1>
  <p><strong>Last 7 days:</strong> {recent_average:.2f}⭐</p>
  <p><strong>Previous 30 days:</strong> {historical_average:.2f}⭐</p>
  <p><strong>Drop:</strong> {drop:.2f} points</p>
  <p>Review recent feedback on {_e(platform)} and address recurring issues.</p>
</div>"""


def daily_briefing_subject(progress: DailyRatingProgress) -> str:
    status = "✅ On Track" if progress.on_track else "⚠️ Behind Target"
    return f"📊 Daily Rating Progress: {progress.overall_rating or 0}⭐ {status}"


def daily_briefing_email(
    progress: DailyRatingProgress,
    hotel_name: str,
    recommendations: List[str]
) -> str:
    status = "On Track" if progress.on_track else "Behind Target"
    change = f"{'+' if progress.rating_change >= 0 else ''}{progress.rating_change}"
    platforms = [
        ("Google", progress.google_rating),
        ("Booking.com", progress.booking_rating),
        ("TripAdvisor", progress.tripadvisor_rating),
    ]
    platform_items = "".join(
        f"<li><strong>{name}:</strong> {rating}⭐</li>" for name, rating in platforms if rating
    )

    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Daily Rating Progress - {_e(progress.progress_date)}</title></head>
<body style="font-family: Arial, sans-serif; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 30px;">
    <h1>🌟 Daily Rating Progress</h1>
    <p>{_e(progress.progress_date)} • {_e(hotel_name)}</p>
    <p><strong>Status:</strong> {status}</p>
    <p><strong>Overall Rating:</strong> {progress.overall_rating or 0}⭐ ({change})</p>
    <p><strong>Reviews Added:</strong> {progress.reviews_added_today}</p>
    <p><strong>Goal Progress:</strong> {progress.goal_progress_percentage}%</p>
    <h3>📊 Platform Breakdown</h3>
    <ul>
      {platform_items}
      <li><strong>Total Reviews:</strong> {progress.total_reviews} ({progress.five_star_count} five-star)</li>
    </ul>
    <h3>💡 Today's Recommendations</h3>
    <ul>{_list_items(recommendations)}</ul>
  </div>
</body>
</html>"""


# ============================================================================
# Scheduled feedback reports
# ============================================================================

def feedback_report_subject(report_type: str, report: FeedbackReport, sent_at: datetime) -> str:
    if report.average_rating >= 4:
        trend = "📈"
    elif report.average_rating >= 3:
        trend = "📊"
    else:
        trend = "📉"
    return (
        f"{trend} {report_type.capitalize()} Guest Experience Report - "
        f"{sent_at:%Y-%m-%d} ({report.average_rating}⭐ avg)"
    )


def feedback_report_email(
    report_type: str,
    report: FeedbackReport,
    period_start: datetime,
    period_end: datetime
) -> str:
    title = report_type.capitalize()
    distribution = "".join(
        f"<td style=\"text-align: center;\"><strong>{stars}⭐</strong><br>{count}</td>"
        for stars, count in (
            (5, report.five_star_count),
            (4, report.four_star_count),
            (3, report.three_star_count),
            (2, report.two_star_count),
            (1, report.one_star_count),
        )
    )
    categories = "".join(
        f"<li><strong>{_e(stat.category)}</strong>: {stat.count} reviews ({stat.avg_rating}⭐ avg)</li>"
        for stat in report.top_categories
    )
    if categories:
        categories = f"<h3>📋 Top Feedback Categories</h3><ul>{categories}</ul>"
    if report.improvement_areas:
        improvement = (
            "<h3>🎯 Areas for Improvement</h3>"
            f"<ul>{_list_items(report.improvement_areas)}</ul>"
        )
    else:
        improvement = (
            "<h3>🎉 Excellent Performance!</h3>"
            "<p>All categories are performing well with ratings above 3.5 stars.</p>"
        )

    return f"""
<div style="font-family: Arial, sans-serif; max-width: 700px; color: #333;">
  <div style="background: #059669; color: white; padding: 20px; text-align: center;">
    <h1 style="margin: 0;">📊 {title} Report</h1>
    <p>{period_start:%Y-%m-%d %H:%M} to {period_end:%Y-%m-%d %H:%M} UTC</p>
  </div>
  <div style="background: #f8f9fa; padding: 20px;">
    <p><strong>Total Feedback:</strong> {report.total_feedback}</p>
    <p><strong>Average Rating:</strong> {report.average_rating}⭐</p>
    <p><strong>Resolution Rate:</strong> {report.resolution_rate}%</p>
    <p><strong>Average Response Time:</strong> {report.response_time_avg} hours</p>
    <h3>⭐ Rating Distribution</h3>
    <table style="width: 100%;"><tr>{distribution}</tr></table>
    {categories}
    {improvement}
    <p style="color: #666;">Best regards,<br><strong>GuestGlow Analytics</strong></p>
  </div>
</div>"""
