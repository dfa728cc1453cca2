"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Shared catalog tables (subjects, tasks, mock tests, routines) carry a
`status` column used for soft deletes; per-user progress keeps its maps
and lists in JSON columns which are always reassigned as a whole.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field

# largest primary key SQLite can store (signed 64-bit INTEGER)
MAX_ROW_ID = 2 ** 63 - 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogStatus(str, Enum):
    """Soft-delete state for shared catalog rows."""
    active = "active"
    inactive = "inactive"


class TestType(str, Enum):
    subject = "Subject"
    mixed = "Mixed"
    full = "Full"
    full_mock = "Full Mock"
    final_mock = "Final Mock"


class RoutineType(str, Enum):
    weekday = "weekday"
    saturday = "saturday"
    sunday = "sunday"


class User(SQLModel, table=True):
    """A registered learner or administrator.

    Fields:
    - `email`: unique, always stored lower-cased
    - `password_hash`: hashed password string (never store plaintext)
    - `is_admin`: grants write access to the shared catalog
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    is_admin: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    last_login: Optional[datetime] = None


class UserProgress(SQLModel, table=True):
    """Per-user progress record, exactly one per `User`."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)
    completed_tasks: Dict[str, bool] = Field(default_factory=dict, sa_column=Column(JSON))
    test_scores: Dict[str, float] = Field(default_factory=dict, sa_column=Column(JSON))
    # per-user rescheduling of shared tasks/tests
    custom_dates: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))
    custom_test_dates: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))
    custom_tests: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    daily_notes: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))
    study_sessions: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    notes: str = ""
    dark_mode: bool = False
    updated_at: datetime = Field(default_factory=utcnow)


class Subject(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    description: Optional[str] = None
    color: str = "#667eea"
    icon: str = "📚"
    order: int = 0
    status: CatalogStatus = Field(default=CatalogStatus.active, index=True)
    created_at: datetime = Field(default_factory=utcnow)


class Task(SQLModel, table=True):
    """A dated study task in the shared blueprint.

    `date` is a `YYYY-MM-DD` string so that lexical order is calendar order.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    date: str = Field(index=True)
    morning: str
    evening: str = ""
    test: str = "-"
    subject: str = Field(index=True)
    hours: float = 3
    status: CatalogStatus = Field(default=CatalogStatus.active, index=True)
    created_by: Optional[int] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class MockTest(SQLModel, table=True):
    """A scheduled mock test with its MCQ count and target score."""
    id: Optional[int] = Field(default=None, primary_key=True)
    number: int = Field(index=True)
    date: str
    type: TestType = TestType.mixed
    mcqs: int
    focus: str
    target: float
    status: CatalogStatus = Field(default=CatalogStatus.active, index=True)
    created_at: datetime = Field(default_factory=utcnow)


class Routine(SQLModel, table=True):
    """Daily timetable for one kind of day; one row per `type`."""
    id: Optional[int] = Field(default=None, primary_key=True)
    type: RoutineType = Field(index=True, unique=True)
    schedule: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    updated_at: datetime = Field(default_factory=utcnow)


class Setting(SQLModel, table=True):
    """Global key/value application setting."""
    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(index=True, unique=True)
    value: Optional[Any] = Field(default=None, sa_column=Column(JSON))
    updated_at: datetime = Field(default_factory=utcnow)
