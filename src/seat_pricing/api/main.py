import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from seat_pricing import __version__
from seat_pricing.api.plans_api import PlanPayload, router as plans_router
from seat_pricing.api.state import get_calculator, get_plans_service
from seat_pricing.config.logging import setup_logging
from seat_pricing.config.settings import get_settings
from seat_pricing.engine import InvalidArgument, PricingCalculator, PricingError
from seat_pricing.services.plans_service import PlansService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("Seat Pricing API starting, plans from %s", settings.plans_json)
    yield
    logger.info("Seat Pricing API stopped")


app = FastAPI(
    title="Seat Pricing API",
    description="Plan pricing, billing quantities and plan management",
    version=__version__,
    lifespan=lifespan,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(plans_router)


@app.exception_handler(PricingError)
async def pricing_error_handler(request: Request, exc: PricingError) -> JSONResponse:
    logger.warning(
        "PricingError on %s %s: code=%s message=%s",
        request.method,
        request.url.path,
        exc.code,
        exc.message,
    )
    status_code = 400 if isinstance(exc, InvalidArgument) else 422
    return JSONResponse(status_code=status_code, content=exc.to_dict())


class CalcRequest(BaseModel):
    user_count: int
    plan_slug: Optional[str] = None
    plan: Optional[PlanPayload] = None


@app.get("/")
async def root():
    return {"status": "online", "message": "Seat Pricing API Active"}


@app.post("/calculate")
async def calculate_quote(
    req: CalcRequest,
    service: PlansService = Depends(get_plans_service),
    calculator: PricingCalculator = Depends(get_calculator),
):
    """Quote a stored plan by slug, or an inline plan for previews."""
    if req.plan is not None:
        plan = req.plan.to_plan()
    elif req.plan_slug:
        plan = service.get_plan(req.plan_slug)
        if plan is None:
            raise HTTPException(status_code=404, detail=f"Plan '{req.plan_slug}' not found")
    else:
        raise HTTPException(status_code=400, detail="Either plan_slug or plan is required")

    return jsonable_encoder(calculator.quote(plan, req.user_count))


@app.get("/system/status")
async def get_status(service: PlansService = Depends(get_plans_service)):
    settings = get_settings()
    has_report = settings.build_report.exists()
    return {
        "engine_active": True,
        "plans_loaded": len(service.list_plans()),
        "catalog_last_build": settings.build_report.stat().st_mtime if has_report else None,
    }
