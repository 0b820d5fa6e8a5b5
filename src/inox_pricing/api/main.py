"""
INOX price API - HTTP entry points for the pricing service.

Every route that accepts caller data runs it through an OverridePolicy
before validation, so unprivileged callers can never reach override fields.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import pydantic
from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config.settings import configure_logging
from ..errors import ConfigError, NotificationError, ValidationError
from ..policy.override_policy import INQUIRY_POLICY, PRICE_POLICY, SHEETS_POLICY
from ..services.inquiry_mailer import Inquiry
from ..services.sheets_calculator import PriceRequest, SheetsPriceCalculator
from .schemas import PriceInput, error_details
from .security import (
    SECURITY_HEADERS,
    RateLimiter,
    is_privileged,
    rate_limited,
    require_api_key,
    require_api_key_if_configured,
)
from .state import AppState, build_state

logger = logging.getLogger(__name__)


def get_state(request: Request) -> AppState:
    return request.app.state.pricing


def get_sheets(state: AppState = Depends(get_state)) -> SheetsPriceCalculator:
    if state.sheets is None:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "Google Sheets price calculator not available",
                "details": "Set SHEETS_SOURCE to the pricing workbook path or export URL",
            },
        )
    return state.sheets


def create_app(state: Optional[AppState] = None) -> FastAPI:
    """Build the API around the given (or environment-derived) state."""
    state = state or build_state()

    app = FastAPI(
        title="INOX Price API",
        description="Price calculation and inquiry service for INOX tables",
        version=__version__,
    )
    app.state.pricing = state
    app.state.limiter = RateLimiter(state.settings.rate_limit_per_minute)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(state.settings.cors_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    @app.exception_handler(RequestValidationError)
    async def invalid_payload(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": {"error": "Invalid payload", "details": error_details(exc)}},
        )

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal error"})

    @app.get("/")
    async def root():
        return {"ok": True, "service": "inox-price-api"}

    @app.get("/healthz")
    def healthz(state: AppState = Depends(get_state)):
        try:
            loaded = state.provider.snapshot()
        except ConfigError as e:
            logger.error("Health check failed: %s", e.message)
            return JSONResponse(
                status_code=503,
                content={"ok": False, "version": state.provider.version, "error": "Pricing configuration unavailable"},
            )
        return {
            "ok": True,
            "version": state.provider.version,
            "hash": loaded.fingerprint,
            "time": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/price", dependencies=[Depends(rate_limited)])
    def price(
        request: Request,
        payload: dict[str, Any] = Body(...),
        state: AppState = Depends(get_state),
    ):
        safe = PRICE_POLICY.sanitize(payload, is_privileged(request))
        try:
            order = PriceInput.model_validate(safe).to_order()
            breakdown = state.engine.calculate(order)
        except pydantic.ValidationError as e:
            raise HTTPException(status_code=400, detail={"error": "Invalid payload", "details": error_details(e)})
        except ValidationError as e:
            raise HTTPException(status_code=400, detail={"error": e.message, "field": e.field})
        except ConfigError as e:
            logger.error("Pricing config unavailable: %s", e.message)
            raise HTTPException(status_code=503, detail={"error": "Pricing configuration unavailable"})
        return breakdown.to_dict()

    @app.post("/price/sheets", dependencies=[Depends(rate_limited)])
    def price_sheets(
        request: Request,
        payload: dict[str, Any] = Body(...),
        sheets: SheetsPriceCalculator = Depends(get_sheets),
    ):
        safe = SHEETS_POLICY.sanitize(payload, is_privileged(request))
        try:
            return sheets.calculate_price(PriceRequest.model_validate(safe))
        except pydantic.ValidationError as e:
            raise HTTPException(status_code=400, detail={"error": "Invalid payload", "details": error_details(e)})
        except ValidationError as e:
            raise HTTPException(status_code=400, detail={"error": e.message, "field": e.field})
        except ConfigError as e:
            logger.error("Google Sheets price calculation error: %s", e.message)
            raise HTTPException(
                status_code=503,
                detail={"error": e.message, "details": "Failed to calculate price from Google Sheets"},
            )

    @app.post("/refresh-cache", dependencies=[Depends(require_api_key_if_configured)])
    def refresh_cache(sheets: SheetsPriceCalculator = Depends(get_sheets)):
        try:
            return sheets.force_refresh_cache()
        except ConfigError as e:
            logger.error("Cache refresh error: %s", e.message)
            raise HTTPException(
                status_code=503,
                detail={"error": e.message, "details": "Failed to refresh Google Sheets cache"},
            )

    @app.get("/dimensions")
    def dimensions(sheets: SheetsPriceCalculator = Depends(get_sheets)):
        dims = sheets.available_dimensions()
        return {"success": True, "dimensions": dims, "count": len(dims)}

    @app.get("/packages")
    def packages(sheets: SheetsPriceCalculator = Depends(get_sheets)):
        pkgs = sheets.available_packages()
        return {"success": True, "packages": pkgs, "count": len(pkgs)}

    @app.post("/api/send-inquiry")
    def send_inquiry(
        request: Request,
        payload: dict[str, Any] = Body(...),
        state: AppState = Depends(get_state),
    ):
        privileged = is_privileged(request)
        safe = INQUIRY_POLICY.sanitize(payload, privileged)
        raw_inquiry = safe.get("inquiry")
        if not isinstance(raw_inquiry, dict) or not raw_inquiry.get("name") or not raw_inquiry.get("email"):
            raise HTTPException(status_code=400, detail={"error": "Missing required inquiry data"})
        try:
            inquiry = Inquiry.model_validate(raw_inquiry)
        except pydantic.ValidationError as e:
            raise HTTPException(status_code=400, detail={"error": "Invalid inquiry data", "details": error_details(e)})

        breakdown = safe.get("priceBreakdown") if privileged else None
        if breakdown is not None and not isinstance(breakdown, Mapping):
            raise HTTPException(status_code=400, detail={"error": "Invalid priceBreakdown", "field": "priceBreakdown"})
        if breakdown is None:
            breakdown = _quote_for_inquiry(state, raw_inquiry)
            if not privileged:
                inquiry = inquiry.model_copy(update={"price": breakdown.total if breakdown else None})

        try:
            state.mailer.send_inquiry(inquiry, breakdown)
        except NotificationError as e:
            logger.error("Error sending inquiry email %s: %s", inquiry.inquiry_id, e)
            raise HTTPException(status_code=502, detail={"error": "Failed to send inquiry email", "details": str(e)})

        return {"ok": True, "message": "Inquiry email sent successfully", "inquiryId": inquiry.inquiry_id}

    @app.get("/api/test-email")
    def test_email(state: AppState = Depends(get_state)):
        result = state.mailer.test_connection()
        body = {"ok": result["success"], "timestamp": datetime.now(timezone.utc).isoformat()}
        if result["success"]:
            body["message"] = result["message"]
            return body
        body["error"] = result["message"]
        return JSONResponse(status_code=500, content=body)

    @app.post("/admin/reload-config", dependencies=[Depends(require_api_key)])
    def reload_config(state: AppState = Depends(get_state)):
        try:
            state.provider.invalidate()
            loaded = state.provider.snapshot()
        except ConfigError as e:
            logger.error("Pricing config reload failed: %s", e.message)
            raise HTTPException(status_code=503, detail={"error": e.message, "field": e.field})
        return {
            "ok": True,
            "version": state.provider.version,
            "dimensions": len(loaded.rule_set.dimension_base),
            "hash": loaded.fingerprint,
        }

    return app


def _quote_for_inquiry(state: AppState, raw_inquiry: dict):
    """Price the inquiry's configuration as an unprivileged caller would."""
    safe = PRICE_POLICY.sanitize(raw_inquiry, False)
    try:
        return state.engine.calculate(PriceInput.model_validate(safe).to_order())
    except (pydantic.ValidationError, ValidationError, ConfigError) as e:
        logger.info("Inquiry sent without price breakdown: %s", e)
        return None


configure_logging()
app = create_app()
