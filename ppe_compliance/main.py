# ppe_compliance/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ppe_compliance.config import CORS_ORIGINS, configure_logging
from ppe_compliance.database import init_db
from ppe_compliance.errors import ReferenceNotFound, ValidationFailed
from ppe_compliance.router.auth import router as auth_router
from ppe_compliance.router.cameras import router as cameras_router
from ppe_compliance.router.reports import router as reports_router
from ppe_compliance.router.violations import router as violations_router
from ppe_compliance.router.workers import router as workers_router

log = logging.getLogger(__name__)

app = FastAPI(title="PPE Compliance Reporting")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(workers_router)
app.include_router(cameras_router)
app.include_router(violations_router)
app.include_router(reports_router)


@app.on_event("startup")
def on_startup():
    configure_logging()
    init_db()
    log.info("PPE compliance service started")


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    status_code = 400 if isinstance(exc, ReferenceNotFound) else 422
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "field": exc.field})


@app.exception_handler(SQLAlchemyError)
async def store_failure_handler(request: Request, exc: SQLAlchemyError):
    log.exception("store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=503, content={"detail": "Data store unavailable"})


@app.get("/health")
def health():
    return {"status": "ok"}
