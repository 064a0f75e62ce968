"""
main.py — salary calculator FastAPI application entry point.

Start with: uvicorn salarycalc.main:app --reload --port 8000
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from salarycalc.config import settings
from salarycalc.engine.routes import router as salary_router
from salarycalc.engine.tax_engine import SalaryBreakdownEngine
from salarycalc.errors import TaxEngineError, UnsupportedRegimeError
from salarycalc.rules.store import TaxRulesStore

# ---------------------------------------------------------------------------
# Logging — configured before anything else
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan — startup & shutdown hooks
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      1. Build the rules store and preload the configured financial years
         (a broken dataset fails startup instead of the first request)
      2. Share one engine across requests via app.state
    """
    store = TaxRulesStore()
    store.preload(settings.preload_fys_list)
    app.state.engine = SalaryBreakdownEngine(store)
    logger.info(
        "Salary calculator v%s starting up (rules loaded: %s)",
        settings.app_version, ", ".join(store.loaded_fys()) or "none",
    )
    yield
    logger.info("Salary calculator shutting down")


# ---------------------------------------------------------------------------
# FastAPI application instance
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Salary Calculator API",
    version=settings.app_version,
    description=(
        "Salary and income-tax breakdown for Indian salaried taxpayers. "
        "Compares the old and new regimes, with take-home pay and monthly TDS."
    ),
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# ---------------------------------------------------------------------------
# CORS middleware — restricted to frontend origins from settings
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error response helper
# ---------------------------------------------------------------------------
def _make_error_response(
    code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
    status_code: int = 500,
) -> JSONResponse:
    """Build a standard {error: {code, message, details}} response."""
    body = {
        "error": {
            "code": code,
            "message": message,
            "details": details or [],
        }
    }
    return JSONResponse(status_code=status_code, content=body)


# ---------------------------------------------------------------------------
# Global exception handlers — registered BEFORE routers
# ---------------------------------------------------------------------------
@app.exception_handler(TaxEngineError)
async def tax_engine_exception_handler(
    request: Request, exc: TaxEngineError
) -> JSONResponse:
    """RULES_NOT_FOUND → 404, UNSUPPORTED_REGIME → 422, INVALID_RULES → 500."""
    details: list[dict[str, Any]] = []
    if isinstance(exc, UnsupportedRegimeError):
        details = [{"field": "regimes", "issue": f"Available regimes: {', '.join(exc.available)}"}]
    if exc.status_code >= 500:
        logger.error("Tax engine failure on %s %s: %s", request.method, request.url.path, exc)
    return _make_error_response(
        code=exc.code,
        message=str(exc),
        details=details,
        status_code=exc.status_code,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Request-body shape errors (missing `profile`, wrong `regimes` type, unknown
    top-level keys). Profile contents are checked later, in routes.py.
    Returns ALL field violations in one response.
    """
    details = []
    for error in exc.errors():
        # Build dot-notation field path, excluding the top-level 'body' loc
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        details.append({"field": field or None, "issue": error["msg"]})
    return _make_error_response(
        code="VALIDATION_ERROR",
        message="Request validation failed",
        details=details,
        status_code=422,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Converts FastAPI HTTPException to standard error format with semantic code."""
    code_map = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        422: "VALIDATION_ERROR",
    }
    code = code_map.get(exc.status_code, f"HTTP_{exc.status_code}")
    return _make_error_response(
        code=code,
        message=str(exc.detail),
        status_code=exc.status_code,
    )


@app.exception_handler(ValueError)
async def value_error_handler(
    request: Request, exc: ValueError
) -> JSONResponse:
    """
    ValueErrors the router does not turn into violations itself: profile
    violations are answered in routes.py, so what reaches here is an engine
    misconfiguration such as an unknown on_unknown_regime policy.
    Surfaces as 422 VALIDATION_ERROR.
    """
    return _make_error_response(
        code="VALIDATION_ERROR",
        message=str(exc),
        status_code=422,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Catch-all for unexpected errors.
    DEBUG=true  → includes exception type & message in details (dev only).
    DEBUG=false → generic message; full traceback logged server-side only.
    """
    logger.error(
        "Unhandled exception on %s %s",
        request.method,
        request.url.path,
        exc_info=True,
    )
    if settings.debug:
        details = [{"issue": f"{type(exc).__name__}: {exc}"}]
        message = "An unexpected error occurred (debug details included)"
    else:
        details = []
        message = "An unexpected error occurred"
    return _make_error_response(
        code="INTERNAL_ERROR",
        message=message,
        details=details,
        status_code=500,
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------
@app.get("/api/health", tags=["System"])
async def health_check(request: Request) -> dict:
    """Returns service health status and the financial years already loaded."""
    engine = getattr(request.app.state, "engine", None)
    return {
        "status": "ok",
        "version": settings.app_version,
        "rules_loaded": engine.store.loaded_fys() if engine else [],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


app.include_router(salary_router)
