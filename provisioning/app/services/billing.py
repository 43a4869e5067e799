"""Application wiring for the provisioning service."""
from __future__ import annotations

import logging

from fastapi import Request

from ..billing import (
    CheckoutSessionInitiator,
    CustomerReconciler,
    ProvisioningEvent,
    ProvisioningEventLogger,
    ProvisioningService,
    UserRecordResolver,
)
from ..billing.provider import StripePaymentProvider
from ..billing.repository import FirebaseIdentityDirectory, FirestoreUserRepository
from ..config import BillingConfig
from ..resources import BackendResources

logger = logging.getLogger("billing")


class LoggingProvisioningEventLogger(ProvisioningEventLogger):
    """Event logger forwarding provisioning audit events to logging."""

    def log(self, event: ProvisioningEvent) -> None:
        logger.info(
            "Provisioning event %s user=%s customer=%s metadata=%s",
            event.event_type.value,
            event.user_id,
            event.customer_id,
            event.metadata,
            extra={
                "provisioning_event": event.event_type.value,
                "user_id": event.user_id,
                "customer_id": event.customer_id,
            },
        )


def build_provisioning_service(
    resources: BackendResources,
    billing_config: BillingConfig,
) -> ProvisioningService:
    repository = FirestoreUserRepository(resources)
    provider = StripePaymentProvider(billing_config)
    return ProvisioningService(
        resolver=UserRecordResolver(
            repository=repository,
            directory=FirebaseIdentityDirectory(resources),
        ),
        reconciler=CustomerReconciler(provider=provider),
        initiator=CheckoutSessionInitiator(provider=provider, config=billing_config),
        repository=repository,
        event_logger=LoggingProvisioningEventLogger(),
    )


def get_provisioning_service(request: Request) -> ProvisioningService:
    """FastAPI dependency returning the service installed on the application."""

    return request.app.state.provisioning_service


__all__ = [
    "LoggingProvisioningEventLogger",
    "build_provisioning_service",
    "get_provisioning_service",
]
