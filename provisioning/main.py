"""FastAPI application for subscription provisioning."""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from provisioning.app.billing import ProvisioningError
from provisioning.app.billing.errors import GENERIC_FAILURE_MESSAGE
from provisioning.app.config import (
    BillingConfig,
    FirebaseConfig,
    load_billing_config,
    load_firebase_config,
)
from provisioning.app.resources import BackendResources
from provisioning.app.routes.billing import router as billing_router
from provisioning.app.services.billing import build_provisioning_service

load_dotenv()

logger = logging.getLogger("provisioning")


def _cors_origins(raw_value: Optional[str]) -> List[str]:
    if not raw_value:
        return []
    return [origin.strip().rstrip("/") for origin in raw_value.split(",") if origin.strip()]


def create_app(
    *,
    firebase_config: Optional[FirebaseConfig] = None,
    billing_config: Optional[BillingConfig] = None,
) -> FastAPI:
    """Build the application with its own backend resource handle."""

    firebase_config = firebase_config or load_firebase_config()
    billing_config = billing_config or load_billing_config()
    resources = BackendResources(firebase_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.resources.close()

    app = FastAPI(title="Subscription Provisioning API", lifespan=lifespan)
    app.state.resources = resources
    app.state.billing_config = billing_config
    app.state.provisioning_service = build_provisioning_service(resources, billing_config)

    allowed_origins = _cors_origins(os.getenv("CORS_ALLOW_ORIGINS"))
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["POST", "OPTIONS"],
            allow_headers=["*"],
        )

    app.include_router(billing_router)

    @app.exception_handler(ProvisioningError)
    async def _provisioning_error_handler(request: Request, exc: ProvisioningError) -> JSONResponse:
        if exc.is_client_error:
            logger.info("Request to %s rejected (%s): %s", request.url.path, exc.code, exc.message)
        else:
            logger.error(
                "Provisioning failure on %s (%s): %s",
                request.url.path,
                exc.code,
                exc.message,
                exc_info=exc,
            )
        return exc.to_response()

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Malformed request body on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body"},
        )

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": GENERIC_FAILURE_MESSAGE},
        )

    return app


app = create_app()
