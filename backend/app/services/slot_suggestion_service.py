# backend/app/services/slot_suggestion_service.py
"""
Slot Suggestion Service

Finds candidate lesson start times that both participants can make:
their free intervals over [from, from + days) are intersected and the
resulting mutual windows are searched by the requested strategy.

Suggestions are advisory. No lock is taken and nothing is reserved; the
booking step re-checks conflicts before it commits.
"""

from datetime import datetime, timedelta
import logging
from typing import List, NamedTuple, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import MAX_LESSON_DURATION, MIN_LESSON_DURATION, MIN_STEP_MINUTES
from ..core.exceptions import ServiceException, ValidationException
from ..domain.intervals import Interval, intersect_all
from ..domain.slot_search import STRATEGIES, SlotConstraints, get_strategy
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.scheduling_log_repository import SchedulingLogRepository
from ..utils.time_utils import ensure_utc, utcnow
from .availability_service import AvailabilityService
from .base import BaseService

logger = logging.getLogger(__name__)


class SuggestionResult(NamedTuple):
    algorithm: str
    window: Interval
    suggestions: List[Interval]


class SlotSuggestionService(BaseService):
    def __init__(
        self,
        db: Session,
        availability_service: Optional[AvailabilityService] = None,
        log_repository: Optional[SchedulingLogRepository] = None,
    ):
        super().__init__(db)
        self.availability_service = availability_service or AvailabilityService(db)
        self.log_repository = log_repository or RepositoryFactory.create_scheduling_log_repository(db)

    def _validate(
        self,
        teacher_id: str,
        student_id: str,
        duration_minutes: int,
        step_minutes: int,
        buffer_minutes: int,
        max_suggestions: int,
        days: int,
        algorithm: str,
    ) -> None:
        if not teacher_id or not student_id:
            raise ValidationException("teacher_id and student_id are required", code="MISSING_ID")
        if not MIN_LESSON_DURATION <= duration_minutes <= MAX_LESSON_DURATION:
            raise ValidationException(
                f"duration_minutes must be between {MIN_LESSON_DURATION} and {MAX_LESSON_DURATION}",
                code="INVALID_DURATION",
            )
        if step_minutes < MIN_STEP_MINUTES:
            raise ValidationException(
                f"step_minutes must be at least {MIN_STEP_MINUTES}", code="INVALID_STEP"
            )
        if buffer_minutes < 0:
            raise ValidationException("buffer_minutes must not be negative", code="INVALID_BUFFER")
        if not 1 <= days <= settings.max_suggestion_days:
            raise ValidationException(
                f"days must be between 1 and {settings.max_suggestion_days}", code="INVALID_HORIZON"
            )
        if not 1 <= max_suggestions <= settings.max_suggestions_limit:
            raise ValidationException(
                f"max_suggestions must be between 1 and {settings.max_suggestions_limit}",
                code="INVALID_LIMIT",
            )
        if algorithm.lower() not in STRATEGIES:
            raise ValidationException(
                f"algorithm must be one of {sorted(STRATEGIES)}", code="INVALID_ALGORITHM"
            )

    @BaseService.measure_operation("suggest_slots")
    def suggest_slots(
        self,
        teacher_id: str,
        student_id: str,
        duration_minutes: int,
        step_minutes: Optional[int] = None,
        buffer_minutes: int = 0,
        max_suggestions: int = 5,
        days: Optional[int] = None,
        algorithm: str = "greedy",
        from_: Optional[datetime] = None,
    ) -> SuggestionResult:
        """
        Suggest up to max_suggestions lesson slots for a teacher/student pair.

        Every suggestion [t, t + duration) starts at or after from_ and, padded
        by buffer_minutes on both sides, fits inside one mutually free window.
        Fewer suggestions than requested is a normal outcome.
        """
        step = step_minutes if step_minutes is not None else settings.default_step_minutes
        horizon_days = days if days is not None else settings.default_suggestion_days
        self._validate(
            teacher_id,
            student_id,
            duration_minutes,
            step,
            buffer_minutes,
            max_suggestions,
            horizon_days,
            algorithm,
        )

        start = ensure_utc(from_) if from_ is not None else utcnow()
        window = Interval(start, start + timedelta(days=horizon_days))

        teacher_free = self.availability_service.compute_free_intervals(
            teacher_id, window.start, window.end
        )
        student_free = (
            teacher_free
            if student_id == teacher_id
            else self.availability_service.compute_free_intervals(
                student_id, window.start, window.end
            )
        )
        mutual = intersect_all(teacher_free, student_free)

        strategy = get_strategy(algorithm)
        suggestions = strategy.search(
            mutual,
            SlotConstraints(
                duration_minutes=duration_minutes,
                step_minutes=step,
                buffer_minutes=buffer_minutes,
                max_suggestions=max_suggestions,
                earliest_start=window.start,
            ),
        )
        prometheus_metrics.record_suggestions(strategy.name, len(suggestions))
        self.logger.info(
            "suggest_slots teacher=%s student=%s algorithm=%s windows=%d suggestions=%d",
            teacher_id,
            student_id,
            strategy.name,
            len(mutual),
            len(suggestions),
        )

        if suggestions and settings.scheduling_log_enabled:
            self._record_run(teacher_id, student_id, duration_minutes, strategy.name, window, suggestions)

        return SuggestionResult(strategy.name, window, suggestions)

    def _record_run(
        self,
        teacher_id: str,
        student_id: str,
        duration_minutes: int,
        algorithm: str,
        window: Interval,
        suggestions: List[Interval],
    ) -> None:
        """Persist a SchedulingLog row; a logging failure never fails the suggestion."""
        try:
            with self.transaction():
                self.log_repository.create(
                    algorithm=algorithm,
                    teacher_id=teacher_id,
                    student_id=student_id,
                    duration_minutes=duration_minutes,
                    window_start=window.start,
                    window_end=window.end,
                    suggestions=[s.to_dict() for s in suggestions],
                )
        except ServiceException as exc:
            self.logger.warning(f"Failed to record scheduling log: {exc.message}")
