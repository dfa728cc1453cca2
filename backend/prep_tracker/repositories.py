"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
progress, subjects, tasks, tests, routines). Repositories return
SQLModel objects and perform commits/refreshes where appropriate.
"""

from typing import List, Optional
from sqlmodel import Session, select
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from . import models
from .models import MAX_ROW_ID, CatalogStatus, utcnow


def _in_range(row_id) -> bool:
    """True when `row_id` fits an SQLite INTEGER primary key."""
    return isinstance(row_id, int) and 0 < row_id <= MAX_ROW_ID


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def save(self, user: models.User) -> models.User:
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email (case-insensitive) or `None`."""
        stmt = select(models.User).where(models.User.email == email.strip().lower())
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        if not _in_range(user_id):
            return None
        return self.session.get(models.User, user_id)

    def list_all(self) -> List[models.User]:
        return self.session.exec(select(models.User).order_by(models.User.id)).all()


class ProgressRepository:
    """Access to the one-per-user `UserProgress` row."""
    def __init__(self, session: Session):
        self.session = session

    def get_for_user(self, user_id: int) -> Optional[models.UserProgress]:
        stmt = select(models.UserProgress).where(models.UserProgress.user_id == user_id)
        return self.session.exec(stmt).first()

    def get_or_create(self, user_id: int) -> models.UserProgress:
        """Return the user's progress row, persisting an empty one if absent.

        A concurrent request may insert the row first; the unique
        `user_id` constraint then rejects ours and the stored row is used.
        """
        progress = self.get_for_user(user_id)
        if progress:
            return progress
        try:
            return self.save(models.UserProgress(user_id=user_id))
        except IntegrityError:
            self.session.rollback()
            return self.get_for_user(user_id)

    def save(self, progress: models.UserProgress) -> models.UserProgress:
        self.session.add(progress)
        self.session.commit()
        self.session.refresh(progress)
        return progress


class SubjectRepository:
    """CRUD and soft-delete for shared `Subject` rows."""
    def __init__(self, session: Session):
        self.session = session

    def list_active(self) -> List[models.Subject]:
        """Active subjects in display order."""
        stmt = (
            select(models.Subject)
            .where(models.Subject.status == CatalogStatus.active)
            .order_by(models.Subject.order, models.Subject.id)
        )
        return self.session.exec(stmt).all()

    def list_all(self) -> List[models.Subject]:
        return self.session.exec(select(models.Subject)).all()

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(models.Subject)).one()

    def get(self, subject_id: int) -> Optional[models.Subject]:
        if not _in_range(subject_id):
            return None
        return self.session.get(models.Subject, subject_id)

    def get_by_name(self, name: str) -> Optional[models.Subject]:
        stmt = select(models.Subject).where(models.Subject.name == name)
        return self.session.exec(stmt).first()

    def save(self, subject: models.Subject) -> models.Subject:
        self.session.add(subject)
        self.session.commit()
        self.session.refresh(subject)
        return subject

    def deactivate(self, subject_id: int) -> Optional[models.Subject]:
        """Mark a subject inactive; a missing id is a no-op."""
        subject = self.get(subject_id)
        if not subject:
            return None
        subject.status = CatalogStatus.inactive
        return self.save(subject)


class TaskRepository:
    """CRUD and soft-delete for shared `Task` rows."""
    def __init__(self, session: Session):
        self.session = session

    def list_active(self, month: Optional[str] = None, subject: Optional[str] = None) -> List[models.Task]:
        """Active tasks ordered by date.

        `month` matches the `-MM-` segment of the task date; `subject`
        is an exact subject-name match.
        """
        stmt = select(models.Task).where(models.Task.status == CatalogStatus.active)
        if month:
            stmt = stmt.where(models.Task.date.like(f"%-{month.zfill(2)}-%"))
        if subject:
            stmt = stmt.where(models.Task.subject == subject)
        stmt = stmt.order_by(models.Task.date, models.Task.id)
        return self.session.exec(stmt).all()

    def get(self, task_id: int) -> Optional[models.Task]:
        if not _in_range(task_id):
            return None
        return self.session.get(models.Task, task_id)

    def save(self, task: models.Task) -> models.Task:
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def deactivate(self, task_id: int) -> Optional[models.Task]:
        task = self.get(task_id)
        if not task:
            return None
        task.status = CatalogStatus.inactive
        task.updated_at = utcnow()
        return self.save(task)


class TestRepository:
    """CRUD and soft-delete for shared `MockTest` rows."""
    def __init__(self, session: Session):
        self.session = session

    def list_active(self) -> List[models.MockTest]:
        stmt = (
            select(models.MockTest)
            .where(models.MockTest.status == CatalogStatus.active)
            .order_by(models.MockTest.number, models.MockTest.id)
        )
        return self.session.exec(stmt).all()

    def get(self, test_id: int) -> Optional[models.MockTest]:
        if not _in_range(test_id):
            return None
        return self.session.get(models.MockTest, test_id)

    def save(self, test: models.MockTest) -> models.MockTest:
        self.session.add(test)
        self.session.commit()
        self.session.refresh(test)
        return test

    def deactivate(self, test_id: int) -> Optional[models.MockTest]:
        test = self.get(test_id)
        if not test:
            return None
        test.status = CatalogStatus.inactive
        return self.save(test)


class RoutineRepository:
    """Repository for routine upserts keyed by routine type."""
    def __init__(self, session: Session):
        self.session = session

    def list_all(self) -> List[models.Routine]:
        return self.session.exec(select(models.Routine)).all()

    def upsert(self, routine_type: models.RoutineType, schedule: List[dict]) -> models.Routine:
        """Replace the schedule for `routine_type`, creating the row if needed."""
        existing = self.session.exec(
            select(models.Routine).where(models.Routine.type == routine_type)
        ).first()
        routine = existing or models.Routine(type=routine_type)
        routine.schedule = schedule
        routine.updated_at = utcnow()
        self.session.add(routine)
        self.session.commit()
        self.session.refresh(routine)
        return routine
