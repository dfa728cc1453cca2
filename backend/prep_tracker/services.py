"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories.
Services are intentionally thin: they perform validation, execute domain
logic and persist aggregates via repositories. Validation failures are
raised as `ValueError` so controllers can translate them into 400s.

The `serialize_*` helpers build the JSON projections returned to the
browser client (camelCase keys, string ids, no password hashes).
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple, Union

import jwt
from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .models import MAX_ROW_ID, CatalogStatus, RoutineType, TestType, utcnow
from .schemas import (
    DataSyncIn, ProgressIn, SubjectIn, SubjectUpdate, TaskIn, TaskSyncItem, TaskUpdate, TestIn, TestSyncItem, TestUpdate,
)

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
MIN_PASSWORD_LENGTH = 6

_PROGRESS_FIELDS = {
    "completedTasks": "completed_tasks",
    "testScores": "test_scores",
    "customDates": "custom_dates",
    "customTestDates": "custom_test_dates",
    "customTests": "custom_tests",
    "dailyNotes": "daily_notes",
    "studySessions": "study_sessions",
    "notes": "notes",
    "darkMode": "dark_mode",
}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _parse_id(value: Union[int, str, None]) -> Optional[int]:
    """Return an integer primary key for `value`, or `None` for client-side ids.

    Only ASCII digit strings within the storable key range qualify.
    """
    if isinstance(value, str):
        value = value.strip()
        if not (value.isascii() and value.isdigit()):
            return None
        value = int(value)
    if isinstance(value, int) and not isinstance(value, bool) and 0 < value <= MAX_ROW_ID:
        return value
    return None


def _missing_fields(model, values: dict) -> List[str]:
    return [name for name, field in model.model_fields.items() if field.is_required() and name not in values]


def serialize_user(user: models.User, detail: bool = False) -> dict:
    """Public projection of a user; the password hash is never included."""
    out = {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "isAdmin": bool(user.is_admin),
    }
    if detail:
        out["createdAt"] = _iso(user.created_at)
        out["lastLogin"] = _iso(user.last_login)
    return out


def serialize_subject(subject: models.Subject) -> dict:
    return {
        "id": str(subject.id),
        "name": subject.name,
        "description": subject.description,
        "color": subject.color,
        "icon": subject.icon,
        "order": subject.order,
        "status": CatalogStatus(subject.status).value,
        "isActive": subject.status == CatalogStatus.active,
        "createdAt": _iso(subject.created_at),
    }


def serialize_task(task: models.Task, detail: bool = False) -> dict:
    out = {
        "id": str(task.id),
        "date": task.date,
        "morning": task.morning,
        "evening": task.evening,
        "test": task.test,
        "subject": task.subject,
        "hours": task.hours,
    }
    if detail:
        out.update({
            "status": CatalogStatus(task.status).value,
            "isActive": task.status == CatalogStatus.active,
            "createdBy": str(task.created_by) if task.created_by is not None else None,
            "createdAt": _iso(task.created_at),
            "updatedAt": _iso(task.updated_at),
        })
    return out


def serialize_test(test: models.MockTest, detail: bool = False) -> dict:
    out = {
        "id": str(test.id),
        "number": test.number,
        "date": test.date,
        "type": TestType(test.type).value,
        "mcqs": test.mcqs,
        "focus": test.focus,
        "target": test.target,
    }
    if detail:
        out.update({
            "status": CatalogStatus(test.status).value,
            "isActive": test.status == CatalogStatus.active,
            "createdAt": _iso(test.created_at),
        })
    return out


def serialize_routine(routine: models.Routine) -> dict:
    return {
        "id": str(routine.id),
        "type": RoutineType(routine.type).value,
        "schedule": list(routine.schedule or []),
        "updatedAt": _iso(routine.updated_at),
    }


def group_routines(routines: Iterable[models.Routine]) -> Dict[str, List[dict]]:
    """Fold routine rows into the fixed weekday/saturday/sunday structure."""
    grouped = {t.value: [] for t in RoutineType}
    for r in routines:
        grouped[RoutineType(r.type).value] = list(r.schedule or [])
    return grouped


def serialize_progress(progress: models.UserProgress) -> dict:
    """Transport form of a progress row with empty defaults for absent fields."""
    return {
        "completedTasks": dict(progress.completed_tasks or {}),
        "testScores": dict(progress.test_scores or {}),
        "customDates": dict(progress.custom_dates or {}),
        "customTestDates": dict(progress.custom_test_dates or {}),
        "customTests": list(progress.custom_tests or []),
        "dailyNotes": dict(progress.daily_notes or {}),
        "studySessions": list(progress.study_sessions or []),
        "notes": progress.notes or "",
        "darkMode": bool(progress.dark_mode),
    }


def hash_password(password: str) -> str:
    return PWD_CTX.hash(password)


def issue_token(user: models.User) -> str:
    """Sign a JWT carrying the user id, valid for `JWT_EXPIRE_DAYS`."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.JWT_EXPIRE_DAYS)
    payload = {"user_id": user.id, "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.progress_repo = repositories.ProgressRepository(session)

    def register(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> Tuple[models.User, str]:
        """Create a user with a hashed password plus an empty progress row.

        Returns the persisted `User` and a freshly issued token. Raises
        `ValueError` for missing fields, short passwords and duplicate
        emails.
        """
        email = (email or "").strip().lower()
        if not name or not email or not password:
            raise ValueError("All fields are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if self.user_repo.get_by_email(email):
            raise ValueError("Email already registered")
        user = self.user_repo.create(
            models.User(name=name, email=email, password_hash=hash_password(password), is_admin=False)
        )
        self.progress_repo.get_or_create(user.id)
        return user, issue_token(user)

    def authenticate(self, email: str, password: str) -> Optional[Tuple[models.User, str]]:
        """Verify credentials and return `(user, token)` on success.

        Returns `None` if authentication fails; unknown emails and wrong
        passwords are indistinguishable to the caller.
        """
        if not email or not password:
            return None
        user = self.user_repo.get_by_email(email)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        user.last_login = utcnow()
        user = self.user_repo.save(user)
        return user, issue_token(user)


class AdminService:
    """User administration for admin-only routes."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def list_users(self) -> List[models.User]:
        return self.user_repo.list_all()

    def toggle_admin(self, user_id: int) -> Optional[models.User]:
        """Flip the admin flag; returns `None` when the user does not exist."""
        user = self.user_repo.get(user_id)
        if not user:
            return None
        user.is_admin = not user.is_admin
        return self.user_repo.save(user)


class CatalogService:
    """Reads and writes over the shared curriculum."""
    def __init__(self, session: Session):
        self.session = session
        self.subjects = repositories.SubjectRepository(session)
        self.tasks = repositories.TaskRepository(session)
        self.tests = repositories.TestRepository(session)
        self.routines = repositories.RoutineRepository(session)

    def snapshot(self) -> dict:
        """Everything the client needs to render the shared blueprint."""
        return {
            "subjects": [s.name for s in self.subjects.list_active()],
            "tasks": [serialize_task(t) for t in self.tasks.list_active()],
            "tests": [serialize_test(t) for t in self.tests.list_active()],
            "routines": group_routines(self.routines.list_all()),
        }

    def sync(self, payload: DataSyncIn, user_id: int) -> None:
        """Apply a bulk catalog sync section by section.

        Items are committed one at a time; a failure part-way leaves the
        earlier items in place.
        """
        if payload.subjects is not None:
            self.sync_subjects(payload.subjects)
        if payload.tasks is not None:
            for item in payload.tasks:
                self.upsert_task(item, user_id)
        if payload.tests is not None:
            for item in payload.tests:
                self.upsert_test(item)
        if payload.routines is not None:
            for routine_type, schedule in payload.routines.model_dump(exclude_none=True).items():
                self.routines.upsert(RoutineType(routine_type), schedule)

    def sync_subjects(self, names: List[str]) -> None:
        """Reconcile subjects by name against `names`.

        Missing names are created (or reactivated) with their list
        position as order; active subjects absent from `names` are
        deactivated. Present active subjects are left unchanged.
        """
        existing = {s.name: s for s in self.subjects.list_all()}
        seen = set()
        for position, name in enumerate(names):
            if name in seen:
                continue
            seen.add(name)
            subject = existing.get(name)
            if subject is None:
                existing[name] = self.subjects.save(models.Subject(name=name, order=position))
            elif subject.status != CatalogStatus.active:
                subject.status = CatalogStatus.active
                subject.order = position
                self.subjects.save(subject)
        for subject in existing.values():
            if subject.name not in seen and subject.status == CatalogStatus.active:
                subject.status = CatalogStatus.inactive
                self.subjects.save(subject)

    # subjects

    def create_subject(self, payload: SubjectIn) -> models.Subject:
        if not payload.name or not payload.name.strip():
            raise ValueError("Subject name is required")
        if self.subjects.get_by_name(payload.name):
            raise ValueError("Subject already exists")
        subject = models.Subject(name=payload.name, description=payload.description, order=self.subjects.count())
        if payload.color:
            subject.color = payload.color
        if payload.icon:
            subject.icon = payload.icon
        return self.subjects.save(subject)

    def update_subject(self, subject_id: int, payload: SubjectUpdate) -> Optional[models.Subject]:
        subject = self.subjects.get(subject_id)
        if not subject:
            return None
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "is_active" in changes:
            subject.status = CatalogStatus.active if changes.pop("is_active") else CatalogStatus.inactive
        if "name" in changes and changes["name"] != subject.name and self.subjects.get_by_name(changes["name"]):
            raise ValueError("Subject already exists")
        for field, value in changes.items():
            setattr(subject, field, value)
        return self.subjects.save(subject)

    def delete_subject(self, subject_id: int) -> None:
        self.subjects.deactivate(subject_id)

    # tasks

    def create_task(self, payload: TaskIn, user_id: int) -> models.Task:
        task = models.Task(**payload.model_dump(include=set(TaskIn.model_fields)), created_by=user_id)
        return self.tasks.save(task)

    def update_task(self, task_id: int, payload: TaskUpdate) -> Optional[models.Task]:
        task = self.tasks.get(task_id)
        if not task:
            return None
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(task, field, value)
        task.updated_at = utcnow()
        return self.tasks.save(task)

    def upsert_task(self, item: TaskSyncItem, user_id: int) -> models.Task:
        """Update the task named by `item.id` when it exists, else create one.

        Updates apply only the fields sent; creates raise `ValueError`
        when a required field is missing.
        """
        values = item.model_dump(exclude_unset=True, exclude_none=True, exclude={"id"})
        task_id = _parse_id(item.id)
        if task_id is not None and self.tasks.get(task_id):
            return self.update_task(task_id, TaskUpdate(**values))
        missing = _missing_fields(TaskIn, values)
        if missing:
            raise ValueError(f"Task is missing required fields: {', '.join(missing)}")
        return self.create_task(TaskIn(**values), user_id)

    def delete_task(self, task_id: int) -> None:
        self.tasks.deactivate(task_id)

    # tests

    def create_test(self, payload: TestIn) -> models.MockTest:
        values = payload.model_dump(include=set(TestIn.model_fields))
        values["type"] = TestType(values["type"])
        return self.tests.save(models.MockTest(**values))

    def update_test(self, test_id: int, payload: TestUpdate) -> Optional[models.MockTest]:
        test = self.tests.get(test_id)
        if not test:
            return None
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            if field == "type":
                value = TestType(value)
            setattr(test, field, value)
        return self.tests.save(test)

    def upsert_test(self, item: TestSyncItem) -> models.MockTest:
        values = item.model_dump(exclude_unset=True, exclude_none=True, exclude={"id"})
        test_id = _parse_id(item.id)
        if test_id is not None and self.tests.get(test_id):
            return self.update_test(test_id, TestUpdate(**values))
        missing = _missing_fields(TestIn, values)
        if missing:
            raise ValueError(f"Test is missing required fields: {', '.join(missing)}")
        return self.create_test(TestIn(**values))

    def delete_test(self, test_id: int) -> None:
        self.tests.deactivate(test_id)

    # routines

    def list_routines(self) -> Dict[str, List[dict]]:
        return group_routines(self.routines.list_all())

    def put_routine(self, routine_type: str, schedule: List[dict]) -> models.Routine:
        try:
            kind = RoutineType(routine_type)
        except ValueError:
            raise ValueError("Invalid routine type")
        return self.routines.upsert(kind, schedule)


class ProgressService:
    """Per-user progress reads and partial updates."""
    def __init__(self, session: Session):
        self.session = session
        self.progress_repo = repositories.ProgressRepository(session)

    def get(self, user_id: int) -> dict:
        return serialize_progress(self.progress_repo.get_or_create(user_id))

    def update(self, user_id: int, payload: ProgressIn) -> models.UserProgress:
        """Overwrite only the fields present in `payload`.

        Explicit empty values (`""`, `false`, `{}`) are applied; fields
        that are absent or null are left untouched.
        """
        progress = self.progress_repo.get_or_create(user_id)
        # whole top-level fields are dumped so nested items keep their defaults
        changes = payload.model_dump(by_alias=True, include=payload.model_fields_set)
        for key, value in changes.items():
            if value is None:
                continue
            if key == "customTests":
                for item in value:
                    if not item.get("createdAt"):
                        item["createdAt"] = utcnow().isoformat()
            setattr(progress, _PROGRESS_FIELDS[key], value)
        progress.updated_at = utcnow()
        return self.progress_repo.save(progress)


class AnalyticsService:
    """Read-side aggregation of a user's progress against the catalog."""
    def __init__(self, session: Session):
        self.session = session
        self.progress_repo = repositories.ProgressRepository(session)
        self.tasks = repositories.TaskRepository(session)
        self.tests = repositories.TestRepository(session)

    def summary(self, user_id: int) -> dict:
        """Compute overview, per-subject stats and test performance.

        Nothing is persisted; every call recomputes from the stored
        progress row and the active catalog.
        """
        progress = self.progress_repo.get_for_user(user_id)
        completed = dict(progress.completed_tasks or {}) if progress else {}
        scores = dict(progress.test_scores or {}) if progress else {}
        sessions = list(progress.study_sessions or []) if progress else []
        tasks = self.tasks.list_active()
        tests = self.tests.list_active()

        total_tasks = len(tasks)
        completed_count = sum(1 for done in completed.values() if done)

        subject_stats: Dict[str, dict] = {}
        for task in tasks:
            stats = subject_stats.setdefault(task.subject, {"total": 0, "completed": 0, "hours": 0})
            stats["total"] += 1
            if completed.get(str(task.id)):
                stats["completed"] += 1
                stats["hours"] += task.hours or 0

        test_performance = []
        for test in tests:
            score = scores.get(str(test.id))
            percentage = None
            if score is not None and test.mcqs:
                percentage = _round_half_up(score / test.mcqs * 100)
            test_performance.append({
                "id": str(test.id),
                "number": test.number,
                "type": TestType(test.type).value,
                "mcqs": test.mcqs,
                "score": score,
                "percentage": percentage,
            })

        return {
            "overview": {
                "totalTasks": total_tasks,
                "completedCount": completed_count,
                "progressPercentage": _round_half_up(completed_count / total_tasks * 100) if total_tasks else 0,
                "totalStudyHours": sum((s.get("duration") or 0) for s in sessions),
            },
            "subjectStats": subject_stats,
            "testPerformance": test_performance,
            "studySessions": sessions,
        }
