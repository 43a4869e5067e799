"""Billing domain package: user/customer reconciliation and checkout sessions."""

from .catalog import PLAN_CATALOG, PlanDefinition, get_checkout_plan
from .errors import (
    ConfigurationMissing,
    InvalidPlan,
    ProviderError,
    ProviderRejected,
    ProvisioningError,
    Unavailable,
    UserNotFound,
    ValidationError,
)
from .models import (
    BillingCustomerRef,
    CheckoutSession,
    CustomerReconciliation,
    PlanKey,
    ProvisioningEvent,
    ProvisioningEventType,
    UserRecord,
)
from .service import (
    CheckoutSessionInitiator,
    CustomerReconciler,
    IdentityDirectory,
    PaymentProvider,
    ProvisioningEventLogger,
    ProvisioningService,
    UserRecordResolver,
    UserRepository,
)

__all__ = [
    "BillingCustomerRef",
    "CheckoutSession",
    "CheckoutSessionInitiator",
    "ConfigurationMissing",
    "CustomerReconciler",
    "CustomerReconciliation",
    "IdentityDirectory",
    "InvalidPlan",
    "PLAN_CATALOG",
    "PaymentProvider",
    "PlanDefinition",
    "PlanKey",
    "ProviderError",
    "ProviderRejected",
    "ProvisioningError",
    "ProvisioningEvent",
    "ProvisioningEventLogger",
    "ProvisioningEventType",
    "ProvisioningService",
    "Unavailable",
    "UserNotFound",
    "UserRecord",
    "UserRecordResolver",
    "UserRepository",
    "ValidationError",
    "get_checkout_plan",
]
