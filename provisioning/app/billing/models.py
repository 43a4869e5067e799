"""Domain models for subscription provisioning."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Provider-side metadata key linking a customer or session back to the user.
USER_METADATA_KEY = "firebaseUID"
PLAN_METADATA_KEY = "planId"


class PlanKey(str, Enum):
    """Canonical identifiers for subscription plans."""

    TRIAL = "trial"
    PREMIUM = "premium"


class UserRecord(BaseModel):
    """Validated view of a user profile document."""

    user_id: str = Field(min_length=1)
    email: Optional[str] = None
    billing_customer_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("billing_customer_id", "stripeCustomerId", "billingCustomerId"),
    )

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @field_validator("email", "billing_customer_id")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    @property
    def has_billing_customer(self) -> bool:
        return self.billing_customer_id is not None


class BillingCustomerRef(BaseModel):
    """Reference to a customer owned by the billing provider."""

    customer_id: str = Field(min_length=1)
    user_id: str
    email: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class CustomerReconciliation(BaseModel):
    """Outcome of reconciling a user with a billing customer.

    ``persisted`` is ``True`` when the customer was just created and its id
    still has to be written back to the user record.
    """

    customer: BillingCustomerRef
    persisted: bool

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class CheckoutSession(BaseModel):
    """Provider-hosted checkout session returned to the caller."""

    session_id: str
    url: str
    customer_id: str
    plan_key: PlanKey
    metadata: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ProvisioningEventType(str, Enum):
    """Audit event categories emitted by the provisioning flow."""

    CUSTOMER_CREATED = "customer_created"
    CUSTOMER_REUSED = "customer_reused"
    CUSTOMER_ATTACHED = "customer_attached"
    CHECKOUT_SESSION_CREATED = "checkout_session_created"


class ProvisioningEvent(BaseModel):
    """Structured audit event for support lookups and analytics."""

    event_type: ProvisioningEventType
    user_id: str
    customer_id: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)
