# backend/app/repositories/course_repository.py
from sqlalchemy.orm import Session

from ..models.course import Course
from .base_repository import BaseRepository


class CourseRepository(BaseRepository[Course]):
    def __init__(self, db: Session):
        super().__init__(db, Course)
