"""
Rating Goals and Daily Progress

- calculate_rating_goal(): how many five-star reviews lift the average to a
  target by a date, and what that means per day/week/month
- RatingService.daily_progress(): aggregates external review ratings into the
  per-day `daily_rating_progress` row and emails a morning briefing
"""
import asyncio
import math
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from dateutil import parser as date_parser

from guestglow.config import get_settings
from guestglow.models.schemas import (
    DailyProgressResult,
    DailyRatingProgress,
    EmailPriority,
    EmailRequest,
    RatingGoalCalculation,
    RatingGoalRequest,
)
from guestglow.repositories.base_repository import utc_now
from guestglow.repositories.rating_repository import RatingRepository
from guestglow.repositories.review_repository import ReviewRepository
from guestglow.services import email_templates
from guestglow.services.email_dispatcher import EmailDispatcher
from guestglow.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

DEFAULT_DAILY_TARGET = 1.55
ON_TRACK_TOLERANCE = 0.8

# platform value in external_reviews -> DailyRatingProgress field
PLATFORM_FIELDS = {
    "google": "google_rating",
    "booking.com": "booking_rating",
    "booking": "booking_rating",
    "tripadvisor": "tripadvisor_rating",
}


def round_half_up(value: float, digits: int = 1) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def success_probability(daily_target: float) -> str:
    if daily_target > 3:
        return "Low"
    if daily_target > 2:
        return "Medium"
    return "High"


def goal_recommendations(daily_target: float, rating_uplift: float, days_remaining: int) -> List[str]:
    recommendations = []

    if daily_target <= 1:
        recommendations.append("Achievable target - focus on consistent quality service")
        recommendations.append("Implement systematic follow-up emails to 5-star internal feedback guests")
    elif daily_target <= 2:
        recommendations.append("Moderate challenge - requires focused effort")
        recommendations.append("Prioritize guest experience improvements in high-impact areas")
        recommendations.append("Consider incentivizing external reviews (within platform guidelines)")
    else:
        recommendations.append("Aggressive target - may need timeline adjustment")
        recommendations.append("Focus on fixing recurring issues that hurt ratings")
        recommendations.append("Consider extending timeline or adjusting target rating")

    if rating_uplift >= 0.5:
        recommendations.append("Significant uplift required - monitor progress weekly")

    if days_remaining < 90:
        recommendations.append("Short timeline - focus on quick wins and service recovery")
    elif days_remaining > 365:
        recommendations.append("Long timeline - opportunity for systematic improvements")

    return recommendations


def calculate_rating_goal(
    current_rating: float,
    target_rating: float,
    target_date: date,
    current_review_count: int,
    today: date
) -> RatingGoalCalculation:
    """
    Five-star reviews X needed so that
    (current * n + 5X) / (n + X) = target, i.e.
    X = ceil((target * n - current * n) / (5 - target)).

    Raises:
        ValueError: target_date is not in the future
    """
    days_remaining = (target_date - today).days
    if days_remaining <= 0:
        raise ValueError("target_date must be in the future")

    n = current_review_count
    # round() keeps float noise from pushing an exact result to the next integer
    five_star_needed = max(
        0, math.ceil(round((target_rating * n - current_rating * n) / (5 - target_rating), 6))
    )
    rating_uplift = round(target_rating - current_rating, 2)
    daily_target = round(five_star_needed / days_remaining, 2)

    return RatingGoalCalculation(
        current_rating=current_rating,
        target_rating=target_rating,
        rating_uplift=rating_uplift,
        target_date=target_date.isoformat(),
        days_remaining=days_remaining,
        reviews_needed=n + five_star_needed,
        five_star_reviews_needed=five_star_needed,
        daily_target=daily_target,
        weekly_target=round(daily_target * 7, 2),
        monthly_target=round(daily_target * 30, 2),
        success_probability=success_probability(daily_target),
        recommendations=goal_recommendations(daily_target, rating_uplift, days_remaining)
    )


def _average(ratings: Iterable[int]) -> Optional[float]:
    values = list(ratings)
    if not values:
        return None
    return round_half_up(sum(values) / len(values), 1)


def _review_day(row: Dict[str, Any]) -> Optional[date]:
    value = row.get("review_date")
    if not value:
        return None
    return date_parser.isoparse(value).date()


def summarize_ratings(
    tenant_id: str,
    progress_date: date,
    rows: List[Dict[str, Any]],
    previous: Optional[DailyRatingProgress] = None,
    goal: Optional[Dict[str, Any]] = None
) -> DailyRatingProgress:
    """Build the daily aggregate from (rating, platform, review_date) rows."""
    ratings = [int(row["rating"]) for row in rows]
    overall = _average(ratings)

    per_platform: Dict[str, List[int]] = {}
    for row in rows:
        field = PLATFORM_FIELDS.get((row.get("platform") or "").lower())
        if field:
            per_platform.setdefault(field, []).append(int(row["rating"]))

    added_today = sum(1 for row in rows if _review_day(row) == progress_date)
    five_star = ratings.count(5)

    rating_change = 0.0
    if previous is not None and previous.overall_rating and overall is not None:
        rating_change = round(overall - previous.overall_rating, 2)

    goal_progress = 0.0
    needed = (goal or {}).get("five_star_reviews_needed")
    if needed is not None and needed <= 0:
        goal_progress = 100.0
    elif needed:
        goal_progress = round_half_up(min(100.0, five_star / needed * 100), 1)

    daily_target = (goal or {}).get("daily_target") or DEFAULT_DAILY_TARGET

    return DailyRatingProgress(
        tenant_id=tenant_id,
        progress_date=progress_date.isoformat(),
        overall_rating=overall,
        total_reviews=len(ratings),
        five_star_count=five_star,
        four_star_count=ratings.count(4),
        three_star_count=ratings.count(3),
        two_star_count=ratings.count(2),
        one_star_count=ratings.count(1),
        reviews_added_today=added_today,
        rating_change=rating_change,
        goal_progress_percentage=goal_progress,
        on_track=added_today >= daily_target * ON_TRACK_TOLERANCE,
        **{field: _average(values) for field, values in per_platform.items()}
    )


def progress_recommendations(progress: DailyRatingProgress) -> List[str]:
    recommendations = []
    overall = progress.overall_rating or 0

    if not progress.on_track:
        recommendations.append("Behind daily target - focus on guest experience improvements")
        recommendations.append("Increase follow-up emails to 5-star internal feedback guests")
    if overall < 4.2:
        recommendations.append("Address recurring service issues to improve baseline rating")
    if progress.reviews_added_today == 0:
        recommendations.append("No reviews today - check QR code placement and guest engagement")
    if overall >= 4.3:
        recommendations.append("Strong rating performance - maintain current service standards")

    return recommendations


class RatingService:
    """
    Rating goal tracking for one hotel
    """

    def __init__(
        self,
        rating_repository: RatingRepository,
        review_repository: ReviewRepository,
        email_dispatcher: EmailDispatcher,
        now: Callable[[], datetime] = utc_now
    ):
        self.rating_repo = rating_repository
        self.review_repo = review_repository
        self.dispatcher = email_dispatcher
        self.now = now

    async def set_goal(self, request: RatingGoalRequest) -> RatingGoalCalculation:
        now = self.now()
        calculation = calculate_rating_goal(
            request.current_rating,
            request.target_rating,
            request.target_date,
            request.current_review_count,
            now.date()
        )
        logger.info(
            f"Rating goal for {request.tenant_id}: {calculation.five_star_reviews_needed} "
            f"five-star reviews in {calculation.days_remaining} days "
            f"({calculation.success_probability})"
        )
        await asyncio.to_thread(
            self.rating_repo.upsert_goal, request.tenant_id, calculation, request.platform, now
        )
        return calculation

    async def daily_progress(
        self,
        tenant_id: str,
        progress_date: Optional[str] = None,
        send_briefing: bool = True
    ) -> DailyProgressResult:
        """Recompute and store the aggregate for one day, then email the briefing."""
        day = date.fromisoformat(progress_date) if progress_date else self.now().date()
        yesterday = (day - timedelta(days=1)).isoformat()

        rows = await asyncio.to_thread(self.review_repo.list_ratings, tenant_id)
        previous = await asyncio.to_thread(self.rating_repo.get_progress, tenant_id, yesterday)
        goal = await asyncio.to_thread(self.rating_repo.get_goal, tenant_id)

        progress = summarize_ratings(tenant_id, day, rows, previous, goal)
        await asyncio.to_thread(self.rating_repo.upsert_progress, progress)

        recommendations = progress_recommendations(progress)
        sent = await self._send_briefing(progress, recommendations) if send_briefing else 0

        return DailyProgressResult(
            progress=progress,
            recommendations=recommendations,
            briefings_sent=sent
        )

    async def _send_briefing(self, progress: DailyRatingProgress, recommendations: List[str]) -> int:
        recipients = settings.report_recipient_list
        if not recipients:
            logger.info("No report recipients configured, skipping daily briefing")
            return 0

        html = email_templates.daily_briefing_email(
            progress, settings.default_hotel_name, recommendations
        )
        sent = 0
        for recipient in recipients:
            try:
                await self.dispatcher.send(EmailRequest(
                    email_type="daily_report",
                    recipient_email=recipient,
                    subject=email_templates.daily_briefing_subject(progress),
                    html_content=html,
                    tenant_id=progress.tenant_id,
                    priority=EmailPriority.NORMAL
                ))
                sent += 1
            except Exception as e:
                logger.error(f"Failed to send briefing to {recipient}: {e}")
        return sent
