from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.config import settings
from app.core.errors import register_error_handlers
from app.core.request_logging import log_slow_requests
from app.db import Base, engine
from app.routers import (
    admin,
    assignments,
    attendance,
    auth,
    classes,
    enrollments,
    marks,
    mcq_tests,
    notifications,
    profile,
    profile_completion,
    roles,
    student,
    students,
    system,
    teacher,
    upload,
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info('startup env=%s version=%s', settings.app_env, settings.app_version)
    yield


app = FastAPI(title=f'{settings.app_name} API', version=settings.app_version, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(',') if origin.strip()],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)
app.middleware('http')(log_slow_requests)
register_error_handlers(app)
app.mount('/storage', StaticFiles(directory=settings.storage_dir, check_dir=False), name='storage')

app.include_router(system.router)
app.include_router(auth.router)
app.include_router(auth.me_router)
app.include_router(roles.router)
app.include_router(students.router)
app.include_router(classes.router)
app.include_router(enrollments.router)
app.include_router(marks.router)
app.include_router(attendance.router)
app.include_router(teacher.router)
app.include_router(student.router)
app.include_router(profile.router)
app.include_router(profile_completion.router)
app.include_router(notifications.router)
app.include_router(admin.router)
app.include_router(assignments.router)
app.include_router(mcq_tests.router)
app.include_router(upload.router)
