# backend/app/repositories/scheduling_log_repository.py
from typing import List, cast

from sqlalchemy.orm import Session

from ..models.scheduling_log import SchedulingLog
from .base_repository import BaseRepository


class SchedulingLogRepository(BaseRepository[SchedulingLog]):
    def __init__(self, db: Session):
        super().__init__(db, SchedulingLog)

    def recent_for_teacher(self, teacher_id: str, limit: int = 20) -> List[SchedulingLog]:
        query = (
            self._build_query()
            .filter(SchedulingLog.teacher_id == teacher_id)
            .order_by(SchedulingLog.created_at.desc())
            .limit(limit)
        )
        return cast(List[SchedulingLog], self._execute_query(query))
