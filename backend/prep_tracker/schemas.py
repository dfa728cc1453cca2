"""Pydantic request schemas used by the API.

Schemas keep API input shapes stable and provide validation for
controller handlers and tests. Field aliases mirror the camelCase keys
used by the browser client.
"""

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

TestTypeName = Literal["Subject", "Mixed", "Full", "Full Mock", "Final Mock"]


class CamelModel(BaseModel):
    """Base model accepting both camelCase aliases and field names."""
    model_config = ConfigDict(populate_by_name=True)


class RegisterIn(BaseModel):
    """Payload for user registration.

    Fields are optional here so that missing values surface as the
    service's own validation message instead of a schema error.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginIn(BaseModel):
    """Payload for the login endpoint."""
    email: str = ""
    password: str = ""


class ScheduleEntry(BaseModel):
    """A single slot in a routine timetable."""
    time: str = ""
    activity: str = ""
    details: str = ""
    duration: str = ""


class RoutineIn(BaseModel):
    schedule: List[ScheduleEntry] = []


class RoutinesIn(BaseModel):
    weekday: Optional[List[ScheduleEntry]] = None
    saturday: Optional[List[ScheduleEntry]] = None
    sunday: Optional[List[ScheduleEntry]] = None


class SubjectIn(BaseModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


class SubjectUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")


class TaskIn(BaseModel):
    date: str
    morning: str
    evening: str = ""
    test: str = "-"
    subject: str
    hours: float = 3


class TaskUpdate(BaseModel):
    date: Optional[str] = None
    morning: Optional[str] = None
    evening: Optional[str] = None
    test: Optional[str] = None
    subject: Optional[str] = None
    hours: Optional[float] = None


class TaskSyncItem(TaskUpdate):
    """Task entry inside a bulk sync; `id` selects update over create.

    Only the fields sent are applied on update; creating a task still
    needs every field `TaskIn` requires.
    """
    id: Optional[Union[int, str]] = None


class TestIn(BaseModel):
    number: int
    date: str
    type: TestTypeName = "Mixed"
    mcqs: int
    focus: str
    target: float


class TestUpdate(BaseModel):
    number: Optional[int] = None
    date: Optional[str] = None
    type: Optional[TestTypeName] = None
    mcqs: Optional[int] = None
    focus: Optional[str] = None
    target: Optional[float] = None


class TestSyncItem(TestUpdate):
    id: Optional[Union[int, str]] = None


class DataSyncIn(BaseModel):
    """Bulk catalog sync payload; every section is optional."""
    subjects: Optional[List[str]] = None
    tasks: Optional[List[TaskSyncItem]] = None
    tests: Optional[List[TestSyncItem]] = None
    routines: Optional[RoutinesIn] = None


class CustomTestIn(CamelModel):
    """A learner-private test that does not touch the shared catalog."""
    id: Union[str, int]
    number: int
    date: str
    type: str = "Mixed"
    mcqs: int = 75
    focus: str = ""
    target: float = 0
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    @field_validator("id")
    @classmethod
    def _id_as_text(cls, v):
        return str(v)


class StudySessionIn(BaseModel):
    date: Optional[str] = None
    duration: float = 0
    subject: Optional[str] = None


class ProgressIn(CamelModel):
    """Partial progress update; only fields present in the body are applied."""
    completed_tasks: Optional[Dict[str, bool]] = Field(default=None, alias="completedTasks")
    test_scores: Optional[Dict[str, Optional[float]]] = Field(default=None, alias="testScores")
    custom_dates: Optional[Dict[str, str]] = Field(default=None, alias="customDates")
    custom_test_dates: Optional[Dict[str, str]] = Field(default=None, alias="customTestDates")
    custom_tests: Optional[List[CustomTestIn]] = Field(default=None, alias="customTests")
    daily_notes: Optional[Dict[str, str]] = Field(default=None, alias="dailyNotes")
    study_sessions: Optional[List[StudySessionIn]] = Field(default=None, alias="studySessions")
    notes: Optional[str] = None
    dark_mode: Optional[bool] = Field(default=None, alias="darkMode")
