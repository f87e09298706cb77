import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lecturegate.core.config import get_settings
from lecturegate.core.errors import LectureGateError
from lecturegate.middleware.audit import audit_middleware
from lecturegate.routers import archive, drafts, enrollments, health, lessons

logging.basicConfig(level=logging.INFO)
log = logging.getLogger("lecturegate")

settings = get_settings()

app = FastAPI(title="LectureGate Content Access API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(audit_middleware)

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(lessons.router, prefix="/api", tags=["lessons"])
app.include_router(enrollments.router, tags=["enrollments"])
app.include_router(enrollments.admin_router, tags=["enrollments"])
app.include_router(archive.router, tags=["archive"])
app.include_router(drafts.router, tags=["drafts"])


@app.exception_handler(LectureGateError)
async def lecturegate_exception_handler(request: Request, exc: LectureGateError):
    # internal detail stays in the log, the client gets the fixed message
    if exc.status_code >= 500:
        log.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    else:
        log.info("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.user_message,
            "code": type(exc).__name__,
            "retryable": exc.retryable,
        },
    )
