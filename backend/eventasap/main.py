# backend/eventasap/main.py

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy.exc import TimeoutError as SA_TimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models  # noqa: F401  registers tables on Base.metadata
from .api import api_booking, api_notification, api_payment, api_vendor, auth
from .core.config import settings
from .core.observability import setup_logging, setup_tracer
from .database import Base, engine
from .middleware.security_headers import SecurityHeadersMiddleware
from .utils.errors import BookingError, booking_error_response

# Configure logging before creating any loggers
setup_logging()
logger = logging.getLogger(__name__)

# Alembic owns the schema in deployed environments; this keeps local SQLite
# and the in-memory test database usable without a migration step.
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="EventASAP Booking API",
    version="1.0.0",
    description="Bookings, price negotiation, payments and notifications for the EventASAP marketplace.",
    default_response_class=ORJSONResponse,
)
setup_tracer(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)


@app.middleware("http")
async def catch_exceptions(request: Request, call_next):
    """Return JSON responses for unexpected errors and log them."""
    try:
        response = await call_next(request)
    except StarletteHTTPException as exc:  # return the original status and detail
        logger.error(
            "HTTP error %s at %s: %s", exc.status_code, request.url.path, exc.detail
        )
        response = ORJSONResponse(
            status_code=exc.status_code, content={"detail": exc.detail}
        )
    except SA_TimeoutError as exc:  # DB pool timeout -> 503 to reduce retry storms
        logger.error("DB timeout at %s: %s", request.url.path, str(exc))
        response = ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Database busy, please retry"},
        )
    except Exception as exc:
        logger.exception("Unhandled error: %s", exc)
        response = ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": {"code": "INTERNAL_ERROR", "message": "Internal Server Error", "field_errors": {}}},
        )
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return validation errors in the common error shape and log them."""
    errors = jsonable_encoder(exc.errors())
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    field_errors = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field_errors[".".join(loc) or "body"] = err.get("msg", "invalid")
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": {
                "code": "VALIDATION_ERROR",
                "message": "Validation error",
                "field_errors": field_errors,
                "errors": errors,
            }
        },
    )


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Fallback for service errors a router did not translate itself."""
    http_exc = booking_error_response(exc)
    return ORJSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


@app.get("/healthz", tags=["health"])
def healthz():
    return {"status": "ok"}


api_prefix = settings.API_V1_STR  # usually "/api/v1"

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(api_booking.router, prefix=api_prefix)
app.include_router(api_payment.router, prefix=api_prefix)
app.include_router(api_notification.router, prefix=api_prefix)
app.include_router(api_vendor.router, prefix=api_prefix)
