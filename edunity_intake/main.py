import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from edunity_intake.api.v1.router import router as api_v1_router
from edunity_intake.core.config import settings as app_settings
from edunity_intake.core.exceptions import (
    AllocationExhaustedError,
    AssignmentNotFoundError,
    DuplicateContactError,
    LeadNotFoundError,
    MissingContactKeyError,
    UnknownLeadTypeError,
)
from edunity_intake.core.rate_limit import limiter

# Configure logging
logging.basicConfig(level=app_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Edunity Lead Intake",
    description="Teacher onboarding and parent request intake with sequential Edunity IDs",
    version="0.1.0",
)

# Attach rate limiter state so slowapi middleware can find it
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware, restricted to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in app_settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


@app.exception_handler(MissingContactKeyError)
async def missing_contact_key_handler(request: Request, exc: MissingContactKeyError):
    logger.warning("Missing contact key: %s", exc.detail)
    return JSONResponse(
        status_code=400,
        content={"ok": False, "detail": exc.detail, "type": exc.code},
    )


@app.exception_handler(DuplicateContactError)
async def duplicate_contact_handler(request: Request, exc: DuplicateContactError):
    logger.warning("Duplicate contact rejected: %s", exc.code)
    return JSONResponse(
        status_code=409,
        content={
            "ok": False,
            "detail": exc.detail,
            "type": exc.code,
            "duplicate_email": exc.duplicate_email,
            "duplicate_phone": exc.duplicate_phone,
        },
    )


@app.exception_handler(AllocationExhaustedError)
async def allocation_exhausted_handler(request: Request, exc: AllocationExhaustedError):
    logger.error("ID allocation exhausted: %s", exc.detail)
    return JSONResponse(
        status_code=503,
        content={"ok": False, "detail": exc.detail, "type": exc.code},
    )


@app.exception_handler(LeadNotFoundError)
async def lead_not_found_handler(request: Request, exc: LeadNotFoundError):
    logger.warning("Lead not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "lead_not_found"},
    )


@app.exception_handler(AssignmentNotFoundError)
async def assignment_not_found_handler(request: Request, exc: AssignmentNotFoundError):
    logger.warning("Assignment not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "assignment_not_found"},
    )


@app.exception_handler(UnknownLeadTypeError)
async def unknown_lead_type_handler(request: Request, exc: UnknownLeadTypeError):
    logger.warning("Unknown lead type: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "unknown_lead_type"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation error: %s", exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": jsonable_errors(exc),
            "type": "validation_error",
        },
    )


def jsonable_errors(exc: RequestValidationError):
    # pydantic puts the raised ValueError in ``ctx``; it is not JSON-serializable
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected/unhandled exceptions.

    Returns a generic 500 response so that raw stack traces are never
    leaked to the client.
    """
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "detail": "An unexpected internal error occurred. Please try again later.",
            "type": "internal_server_error",
        },
    )
