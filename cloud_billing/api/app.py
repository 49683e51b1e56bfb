"""FastAPI application for the Cloud Billing API"""

import sqlite3
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..config.loader import AppConfig
from ..core.billing import BillingService
from ..core.cost_engine import CostEngine, UsageSelection
from ..core.errors import CostEngineError
from ..core.logging import get_logger
from ..storage.repository import BillingRepository

logger = get_logger(__name__)


class SelectionPayload(BaseModel):
    """Body of a calculation or estimate request."""
    model_config = ConfigDict(populate_by_name=True)

    instance_type: Optional[str] = Field(default=None, alias="instanceType")
    storage_type: Optional[str] = Field(default=None, alias="storageType")
    storage_size: Optional[float] = Field(default=None, alias="storageSize")
    hours: Optional[float] = None
    user_id: Optional[str] = Field(default=None, alias="userId")

    def to_selection(self) -> UsageSelection:
        return UsageSelection(
            instance_type_id=self.instance_type,
            storage_type_id=self.storage_type,
            storage_size=self.storage_size,
            hours=self.hours
        )


def create_app(config: AppConfig) -> FastAPI:
    """Build the API around one billing service."""
    repository = BillingRepository(config.db_path)
    catalog = config.catalog
    service = BillingService(
        CostEngine(catalog),
        repository,
        default_user_id=config.default_user_id
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        logger.info(f"Starting Cloud Billing API with database {config.db_path}")
        repository.initialize()
        yield
        logger.info("Cloud Billing API shutdown complete")

    app = FastAPI(
        title="Cloud Billing API",
        description="Cloud compute cost calculator",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests"""
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID", "")
        response = await call_next(request)
        duration = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} in {duration:.3f}s",
            extra={"request_id": request_id}
        )
        return response

    @app.exception_handler(CostEngineError)
    async def cost_engine_error_handler(request: Request, exc: CostEngineError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": str(exc)}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid {location}: {first.get('msg', 'invalid request')}"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": message}
        )

    @app.exception_handler(sqlite3.Error)
    async def storage_error_handler(request: Request, exc: sqlite3.Error):
        logger.error(f"Storage failure on {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": str(exc)}
        )

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "healthy"}

    @app.get("/api/instance-types")
    async def instance_types() -> Dict[str, Dict[str, Any]]:
        return {
            spec.identifier: {
                "name": spec.display_name,
                "cpu": spec.vcpu,
                "memory": spec.memory_gib,
                "pricePerHour": spec.hourly_rate,
                "pricePerMonth": spec.monthly_price,
            }
            for spec in catalog.list_instances()
        }

    @app.get("/api/storage-types")
    async def storage_types() -> Dict[str, float]:
        return {
            storage.identifier: storage.monthly_rate_per_unit
            for storage in catalog.list_storage_classes()
        }

    @app.get("/api/billing")
    def list_billing(
        instance_type: Optional[str] = Query(default=None, alias="instanceType"),
        user_id: Optional[str] = Query(default=None, alias="userId")
    ) -> List[Dict[str, Any]]:
        records = service.history(instance_type_id=instance_type, user_id=user_id)
        return [record.to_dict() for record in records]

    @app.post("/api/billing", status_code=status.HTTP_201_CREATED)
    def create_billing(payload: SelectionPayload) -> Dict[str, Any]:
        record = service.submit(payload.to_selection(), user_id=payload.user_id)
        return record.to_dict()

    @app.get("/api/billing/summary")
    def billing_summary() -> List[Dict[str, Any]]:
        return [row.to_dict() for row in service.summary()]

    @app.post("/api/estimate")
    async def estimate(request: Request) -> Dict[str, float]:
        """Live cost preview; incomplete or invalid selections price at zero.

        The body is read by hand so that malformed or non-object bodies
        still get the zero breakdown instead of a validation error.
        """
        try:
            payload = await request.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = {}

        costs = service.preview(UsageSelection(
            instance_type_id=payload.get("instanceType"),
            storage_type_id=payload.get("storageType"),
            storage_size=payload.get("storageSize"),
            hours=payload.get("hours")
        ))
        return {
            "instanceCost": costs.instance_cost,
            "storageCost": costs.storage_cost,
            "totalCost": costs.total_cost,
        }

    return app
