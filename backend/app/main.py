import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .core.config import get_settings
from .core.logging import configure_logging
from .services.errors import PersistenceError, PrereqError
from .api.routes_briefs import router as briefs_router
from .api.routes_account import router as account_router

configure_logging()
settings = get_settings()
logger = logging.getLogger(__name__)

app = FastAPI(title="Prereq Meeting Brief API")

# CORS:
# - In prod, FRONTEND_ORIGIN is required and we never fall back to "*".
# - In non-prod, wide-open CORS is only enabled if CORS_ALLOW_ALL_ORIGINS=True.
if settings.ENV.lower() == "prod":
    if not settings.FRONTEND_ORIGIN:
        raise RuntimeError(
            "FRONTEND_ORIGIN must be set in production – refusing to start with wide-open CORS."
        )
    origins = [
        o.strip()
        for o in settings.FRONTEND_ORIGIN.split(",")
        if o.strip()
    ]
else:
    if settings.CORS_ALLOW_ALL_ORIGINS:
        origins = ["*"]
    elif settings.FRONTEND_ORIGIN:
        origins = [
            o.strip()
            for o in settings.FRONTEND_ORIGIN.split(",")
            if o.strip()
        ]
    else:
        origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    allow_credentials=False,
)


def _error_response(exc: PrereqError) -> JSONResponse:
    body = {"success": False, "error": exc.code, "message": exc.message}
    if exc.status_code >= 500:
        if exc.code == "INTERNAL_ERROR":
            body["message"] = "An unexpected error occurred"
    elif exc.details:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(PrereqError)
async def handle_prereq_error(request: Request, exc: PrereqError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.message, extra={"step": request.url.path})
    return _error_response(exc)


@app.exception_handler(SQLAlchemyError)
async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Database failures outside BriefStore.transaction() still get the envelope
    logger.error("Database error: %s", exc, extra={"step": request.url.path})
    return _error_response(PersistenceError("Database error"))


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = [
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "BAD_REQUEST", "message": ", ".join(messages)},
    )


app.include_router(briefs_router, prefix=settings.API_PREFIX)
app.include_router(account_router, prefix=settings.API_PREFIX)
