"""
Rating Repository

Upserts for `rating_goals` and `daily_rating_progress`.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from guestglow.models.schemas import DailyRatingProgress, RatingGoalCalculation
from guestglow.repositories.base_repository import BaseRepository
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)


class RatingRepository(BaseRepository):
    """Repository for rating goals and the per-day rating aggregate."""

    table_name = "daily_rating_progress"
    goals_table = "rating_goals"

    def upsert_goal(
        self,
        tenant_id: str,
        calculation: RatingGoalCalculation,
        platform: Optional[str],
        now: datetime
    ) -> None:
        goal_type = "platform_specific" if platform else "overall"
        payload = {
            "tenant_id": tenant_id,
            "goal_type": goal_type,
            "platform": platform,
            "current_rating": calculation.current_rating,
            "target_rating": calculation.target_rating,
            "target_date": calculation.target_date,
            "reviews_needed": calculation.reviews_needed,
            "five_star_reviews_needed": calculation.five_star_reviews_needed,
            "daily_target": calculation.daily_target,
            "updated_at": now.isoformat(),
        }
        try:
            self._table(self.goals_table) \
                .upsert(payload, on_conflict="tenant_id,goal_type") \
                .execute()
            logger.info("Stored %s rating goal for tenant %s", goal_type, tenant_id)

        except Exception as exc:
            self._handle_error(f"upsert_goal({tenant_id})", exc)

    def get_goal(self, tenant_id: str, goal_type: str = "overall") -> Optional[Dict[str, Any]]:
        try:
            response = self._table(self.goals_table) \
                .select("*") \
                .eq("tenant_id", tenant_id) \
                .eq("goal_type", goal_type) \
                .limit(1) \
                .execute()

            return self._first(response)

        except Exception as exc:
            self._handle_error(f"get_goal({tenant_id})", exc)

    def get_progress(self, tenant_id: str, progress_date: str) -> Optional[DailyRatingProgress]:
        try:
            response = self._table() \
                .select("*") \
                .eq("tenant_id", tenant_id) \
                .eq("progress_date", progress_date) \
                .limit(1) \
                .execute()

            row = self._first(response)
            return DailyRatingProgress(**row) if row else None

        except Exception as exc:
            self._handle_error(f"get_progress({tenant_id}, {progress_date})", exc)

    def upsert_progress(self, progress: DailyRatingProgress) -> None:
        """One row per (tenant, date); re-running a day overwrites it."""
        try:
            self._table() \
                .upsert(progress.model_dump(), on_conflict="tenant_id,progress_date") \
                .execute()

        except Exception as exc:
            self._handle_error(f"upsert_progress({progress.tenant_id})", exc)
