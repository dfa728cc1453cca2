"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the exam prep tracker.
Controllers are intentionally thin: they accept requests, check identity
through the `auth` dependencies, delegate to services and return JSON.

Endpoints implemented:
- POST /api/auth/register, POST /api/auth/login, GET /api/auth/me
- GET|PUT /api/data (bulk catalog sync)
- GET|PUT /api/progress
- GET /api/admin/users, PUT /api/admin/users/{id}/admin
- DELETE /api/admin/tasks/{id}, DELETE /api/admin/tests/{id}
- GET|POST /api/subjects, PUT|DELETE /api/subjects/{id}
- GET|POST /api/tasks, PUT|DELETE /api/tasks/{id}
- GET|POST /api/tests, PUT /api/tests/{id}
- GET /api/routines, PUT /api/routines/{type}
- GET /api/analytics
- POST /api/notion-proxy
- GET /health

Errors are returned as `{"message": str}`.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional
import json
import logging
import time
import uuid

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
import requests

from . import models, services
from .auth import get_current_user, require_admin
from .config import settings
from .database import create_db_and_tables, engine, get_session
from .schemas import (
    DataSyncIn, LoginIn, ProgressIn, RegisterIn, RoutineIn,
    SubjectIn, SubjectUpdate, TaskIn, TaskUpdate, TestIn, TestUpdate,
)
from .seed import seed_database
from .utils import notion_proxy

logger = logging.getLogger("prep_tracker.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # bootstrap completes before the server accepts requests
    create_db_and_tables()
    try:
        with Session(engine) as session:
            seed_database(session)
    except Exception:
        logger.exception("Seeding error")
    yield


app = FastAPI(title="Exam Prep Tracker API", lifespan=lifespan)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Serve the browser client when it is checked out next to the backend.
static_dir = Path(__file__).resolve().parent.parent / "static"
if static_dir.exists():
    app.mount("/static", StaticFiles(directory=static_dir), name="static")


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/api"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"message": "; ".join(problems) or "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Server error"})


# auth

@app.post('/api/auth/register', status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Create an account and return a token with the public user profile."""
    try:
        user, token = services.AuthService(db).register(payload.name, payload.email, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {'token': token, 'user': services.serialize_user(user)}


@app.post('/api/auth/login')
def login(payload: LoginIn, db: Session = Depends(get_session)):
    """Authenticate by email/password and return a fresh token.

    Unknown emails and wrong passwords produce the same response.
    """
    result = services.AuthService(db).authenticate(payload.email, payload.password)
    if not result:
        raise HTTPException(status_code=400, detail='Invalid credentials')
    user, token = result
    return {'token': token, 'user': services.serialize_user(user)}


@app.get('/api/auth/me')
def me(user: models.User = Depends(get_current_user)):
    return services.serialize_user(user)


# shared data

@app.get('/api/data')
def get_data(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Return active subjects, tasks, tests and the grouped routines."""
    return services.CatalogService(db).snapshot()


@app.put('/api/data')
def put_data(payload: DataSyncIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Bulk-sync the shared catalog (admin only).

    Subjects are reconciled by name, tasks and tests are updated by id or
    created, and each routine type present is replaced wholesale.
    """
    try:
        services.CatalogService(db).sync(payload, user.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {'message': 'Data updated successfully'}


# progress

@app.get('/api/progress')
def get_progress(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Return the caller's progress, creating an empty record on first read."""
    return services.ProgressService(db).get(user.id)


@app.put('/api/progress')
def put_progress(payload: ProgressIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Partially update the caller's progress; absent fields are kept."""
    services.ProgressService(db).update(user.id, payload)
    return {'message': 'Progress saved successfully'}


# admin

@app.get('/api/admin/users')
def list_users(db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    return [services.serialize_user(u, detail=True) for u in services.AdminService(db).list_users()]


@app.put('/api/admin/users/{user_id}/admin')
def toggle_admin(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Flip the admin flag of another account."""
    target = services.AdminService(db).toggle_admin(user_id)
    if not target:
        raise HTTPException(status_code=404, detail='User not found')
    return {'message': 'Admin status updated', 'isAdmin': target.is_admin}


@app.delete('/api/admin/tasks/{task_id}')
def admin_delete_task(task_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    services.CatalogService(db).delete_task(task_id)
    return {'message': 'Task deleted'}


@app.delete('/api/admin/tests/{test_id}')
def admin_delete_test(test_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    services.CatalogService(db).delete_test(test_id)
    return {'message': 'Test deleted'}


# subjects

@app.get('/api/subjects')
def list_subjects(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return [services.serialize_subject(s) for s in services.CatalogService(db).subjects.list_active()]


@app.post('/api/subjects', status_code=201)
def create_subject(payload: SubjectIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    try:
        subject = services.CatalogService(db).create_subject(payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return services.serialize_subject(subject)


@app.put('/api/subjects/{subject_id}')
def update_subject(subject_id: int, payload: SubjectUpdate, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Update a subject; an unknown id yields `null`."""
    try:
        subject = services.CatalogService(db).update_subject(subject_id, payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return services.serialize_subject(subject) if subject else None


@app.delete('/api/subjects/{subject_id}')
def delete_subject(subject_id: int, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    services.CatalogService(db).delete_subject(subject_id)
    return {'message': 'Subject deleted'}


# tasks

@app.get('/api/tasks')
def list_tasks(month: Optional[str] = None, subject: Optional[str] = None, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """List active tasks, optionally filtered by month (`1`-`12`) and subject."""
    tasks = services.CatalogService(db).tasks.list_active(month=month, subject=subject)
    return [services.serialize_task(t, detail=True) for t in tasks]


@app.post('/api/tasks', status_code=201)
def create_task(payload: TaskIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    task = services.CatalogService(db).create_task(payload, user.id)
    return services.serialize_task(task, detail=True)


@app.put('/api/tasks/{task_id}')
def update_task(task_id: int, payload: TaskUpdate, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    task = services.CatalogService(db).update_task(task_id, payload)
    return services.serialize_task(task, detail=True) if task else None


@app.delete('/api/tasks/{task_id}')
def delete_task(task_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.CatalogService(db).delete_task(task_id)
    return {'message': 'Task deleted'}


# tests

@app.get('/api/tests')
def list_tests(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return [services.serialize_test(t, detail=True) for t in services.CatalogService(db).tests.list_active()]


@app.post('/api/tests', status_code=201)
def create_test(payload: TestIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    test = services.CatalogService(db).create_test(payload)
    return services.serialize_test(test, detail=True)


@app.put('/api/tests/{test_id}')
def update_test(test_id: int, payload: TestUpdate, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    test = services.CatalogService(db).update_test(test_id, payload)
    return services.serialize_test(test, detail=True) if test else None


# routines

@app.get('/api/routines')
def list_routines(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.CatalogService(db).list_routines()


@app.put('/api/routines/{routine_type}')
def put_routine(routine_type: str, payload: RoutineIn, db: Session = Depends(get_session), user: models.User = Depends(require_admin)):
    """Replace the schedule for one routine type (weekday/saturday/sunday)."""
    schedule = [entry.model_dump() for entry in payload.schedule]
    try:
        routine = services.CatalogService(db).put_routine(routine_type, schedule)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return services.serialize_routine(routine)


# analytics

@app.get('/api/analytics')
def analytics(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Aggregate the caller's completion, subject hours and test percentages."""
    return services.AnalyticsService(db).summary(user.id)


# notion

@app.post('/api/notion-proxy')
def proxy_notion(request: Request, path: Optional[str] = None, body: Optional[Any] = Body(default=None)):
    """Forward an allow-listed POST to the Notion API.

    The caller's `Authorization` and `Notion-Version` headers are passed
    through; the upstream status, content type and body are relayed as-is.
    """
    try:
        target = notion_proxy.validate_path(path)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        upstream = notion_proxy.forward(
            target,
            body,
            authorization=request.headers.get('authorization', ''),
            notion_version=request.headers.get('notion-version'),
        )
    except requests.RequestException:
        logger.exception("Notion proxy failed for path %s", target)
        raise HTTPException(status_code=500, detail='Notion proxy failed')
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get('content-type') or 'application/json',
    )


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
