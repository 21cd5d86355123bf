from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from perfeval.api.admin import router as admin_router
from perfeval.api.audit import router as audit_router
from perfeval.api.categories import router as categories_router
from perfeval.api.evaluations import router as evaluations_router
from perfeval.api.health import router as health_router
from perfeval.api.me import router as me_router
from perfeval.core.config import settings
from perfeval.core.errors import UnrecoverableError
from perfeval.core.http_errors import unrecoverable_error_handler
from perfeval.core.logging_config import configure_logging

configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

app = FastAPI(title="Performance Evaluation Core")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(UnrecoverableError, unrecoverable_error_handler)

app.include_router(health_router)
app.include_router(me_router)
app.include_router(admin_router)
app.include_router(evaluations_router)
app.include_router(categories_router)
app.include_router(audit_router)
