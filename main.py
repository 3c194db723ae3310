import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from exceptions import (
    ChartCalculationError,
    EphemerisUnavailableError,
    InvalidCoordinatesError,
    InvalidTimezoneError,
    ProfileNotFoundError,
)
from logging_config import get_logger, setup_logging
from routers import router
from settings import Settings, get_settings

settings = get_settings()
setup_logging(settings.log_level, settings.log_file)
logger = get_logger(__name__)

app = FastAPI(
    title="Natal Chart API",
    description="Natal and transit chart snapshots, aspects and analysis text",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, error: str, message: str, detail=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "detail": detail
        }
    )


# Exception Handlers
@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions raised for bad input values."""
    return _error_response(422, "ValidationError", str(exc))


@app.exception_handler(InvalidCoordinatesError)
async def invalid_coordinates_handler(request: Request, exc: InvalidCoordinatesError):
    """Handle invalid coordinates errors."""
    return _error_response(422, "InvalidCoordinatesError", str(exc))


@app.exception_handler(InvalidTimezoneError)
async def invalid_timezone_handler(request: Request, exc: InvalidTimezoneError):
    """Handle invalid timezone errors."""
    return _error_response(422, "InvalidTimezoneError", str(exc))


@app.exception_handler(ProfileNotFoundError)
async def profile_not_found_handler(request: Request, exc: ProfileNotFoundError):
    return _error_response(404, "ProfileNotFoundError", str(exc))


@app.exception_handler(EphemerisUnavailableError)
async def ephemeris_unavailable_handler(request: Request, exc: EphemerisUnavailableError):
    """Handle a misconfigured or missing position source."""
    logger.error("Position source unavailable: %s", exc)
    return _error_response(503, "EphemerisUnavailableError", str(exc))


@app.exception_handler(ChartCalculationError)
async def chart_calculation_error_handler(request: Request, exc: ChartCalculationError):
    """Handle chart calculation errors."""
    logger.error("Chart calculation failed on %s: %s", request.url.path, exc)
    return _error_response(500, "ChartCalculationError", str(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    return _error_response(422, "ValidationError", "Request validation failed", jsonable_encoder(exc.errors()))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other unexpected exceptions."""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(500, "InternalServerError", "An unexpected error occurred")


# Include API router
app.include_router(router, prefix="/api/v1", tags=["API"])


# Root endpoints
@app.get("/")
async def root(settings: Settings = Depends(get_settings)):
    """Root endpoint with API information."""
    return {
        "message": "Natal Chart API",
        "version": "1.0.0",
        "ephemeris": settings.ephemeris_mode,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
