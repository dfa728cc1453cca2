"""First-run catalog bootstrap.

`seed_database` populates an empty database with the default curriculum
(subjects, routines, mock tests) and an administrator account. It is
called from the application lifespan before requests are served and is
a no-op once any subject exists.
"""

import logging

from sqlmodel import Session

from . import models, repositories
from .config import settings
from .models import RoutineType, TestType
from .services import hash_password

logger = logging.getLogger("prep_tracker.seed")

DEFAULT_SUBJECTS = [
    "Polity", "History", "Geography", "Economy",
    "Science", "Environment", "Current Affairs", "General",
]


def _slot(time, activity, details, duration):
    return {"time": time, "activity": activity, "details": details, "duration": duration}


DEFAULT_ROUTINES = {
    RoutineType.weekday: [
        _slot("05:30 - 06:00", "Wake Up & Freshen", "Morning routine, light exercise", "30 min"),
        _slot("06:00 - 08:00", "Morning Study Block", "Theory reading - Primary subject", "2 hrs"),
        _slot("08:00 - 09:00", "Breakfast & Break", "News reading, current affairs", "1 hr"),
        _slot("09:00 - 18:00", "Office/Work", "Professional commitments", "9 hrs"),
        _slot("18:00 - 19:00", "Evening Break", "Rest, snacks, light walk", "1 hr"),
        _slot("19:00 - 21:00", "Evening Study Block", "MCQ practice, revision", "2 hrs"),
        _slot("21:00 - 22:00", "Dinner & Relaxation", "Light reading, family time", "1 hr"),
        _slot("22:00 - 22:30", "Quick Revision", "Day recap, next day planning", "30 min"),
    ],
    RoutineType.saturday: [
        _slot("06:00 - 08:00", "Morning Theory", "Subject deep dive", "2 hrs"),
        _slot("08:00 - 09:00", "Breakfast", "Current affairs reading", "1 hr"),
        _slot("09:00 - 12:00", "Intensive Study", "Primary subject completion", "3 hrs"),
        _slot("12:00 - 14:00", "Lunch & Break", "Rest and refresh", "2 hrs"),
        _slot("14:00 - 17:00", "MCQ Practice", "Subject-wise practice", "3 hrs"),
        _slot("17:00 - 19:00", "Revision", "Week summary revision", "2 hrs"),
    ],
    RoutineType.sunday: [
        _slot("07:00 - 09:00", "Light Morning Study", "Weak area focus", "2 hrs"),
        _slot("09:00 - 11:00", "Mock Test", "Weekly assessment", "2 hrs"),
        _slot("11:00 - 13:00", "Test Analysis", "Error log, learning", "2 hrs"),
        _slot("13:00 - 16:00", "Break & Lunch", "Complete rest", "3 hrs"),
        _slot("16:00 - 18:00", "Next Week Planning", "Schedule preparation", "2 hrs"),
    ],
}

# (number, date, type, mcqs, focus, target)
DEFAULT_TESTS = [
    (1, "2026-01-04", TestType.subject, 50, "Polity + History", 40),
    (2, "2026-01-11", TestType.subject, 50, "Geography + Economy", 40),
    (3, "2026-01-18", TestType.mixed, 75, "GS Comprehensive", 60),
    (4, "2026-01-25", TestType.mixed, 75, "All Subjects", 60),
    (5, "2026-01-31", TestType.mixed, 75, "Polity Heavy", 60),
    (6, "2026-02-01", TestType.subject, 75, "Environment", 60),
    (7, "2026-02-07", TestType.mixed, 75, "History Focus", 60),
    (8, "2026-02-08", TestType.mixed, 75, "Polity + Geo", 60),
    (9, "2026-02-14", TestType.mixed, 75, "Weak Areas", 60),
    (10, "2026-02-15", TestType.full, 100, "Science Focus", 80),
    (11, "2026-02-21", TestType.full, 100, "Complete GS", 80),
    (12, "2026-02-22", TestType.full, 100, "Current Affairs", 80),
    (13, "2026-03-07", TestType.full_mock, 200, "Exam Simulation", 160),
    (14, "2026-03-08", TestType.full_mock, 200, "Exam Simulation", 160),
    (15, "2026-03-14", TestType.final_mock, 200, "Final Simulation", 170),
]


def seed_database(session: Session) -> bool:
    """Insert the default catalog and admin user into an empty database.

    Returns True when data was inserted, False when the database was
    already seeded.
    """
    subjects = repositories.SubjectRepository(session)
    if subjects.count() > 0:
        logger.info("Database already seeded")
        return False

    logger.info("Seeding database...")
    for order, name in enumerate(DEFAULT_SUBJECTS):
        subjects.save(models.Subject(name=name, order=order))

    routines = repositories.RoutineRepository(session)
    for routine_type, schedule in DEFAULT_ROUTINES.items():
        routines.upsert(routine_type, [dict(slot) for slot in schedule])

    tests = repositories.TestRepository(session)
    for number, date, test_type, mcqs, focus, target in DEFAULT_TESTS:
        tests.save(models.MockTest(number=number, date=date, type=test_type, mcqs=mcqs, focus=focus, target=target))

    users = repositories.UserRepository(session)
    admin = users.get_by_email(settings.ADMIN_EMAIL)
    if admin is None:
        admin = users.create(models.User(
            name="Admin",
            email=settings.ADMIN_EMAIL,
            password_hash=hash_password(settings.ADMIN_PASSWORD),
            is_admin=True,
        ))
    repositories.ProgressRepository(session).get_or_create(admin.id)
    logger.info("Database seeded; admin account is %s", settings.ADMIN_EMAIL)
    return True
