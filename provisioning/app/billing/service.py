"""Subscription provisioning: resolve the user, reconcile the customer, open checkout."""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Protocol

from .catalog import get_checkout_plan
from .errors import ConfigurationMissing, ProvisioningError, ValidationError
from .models import (
    PLAN_METADATA_KEY,
    USER_METADATA_KEY,
    BillingCustomerRef,
    CheckoutSession,
    CustomerReconciliation,
    PlanKey,
    ProvisioningEvent,
    ProvisioningEventType,
    UserRecord,
)

if TYPE_CHECKING:  # pragma: no cover
    from ..config import BillingConfig

logger = logging.getLogger("billing")


class UserRepository(Protocol):
    """Reads user profile documents and attaches billing customer ids."""

    def get_user(self, user_id: str) -> UserRecord:
        """Return the user record or raise ``UserNotFound``/``Unavailable``."""

    def attach_customer_id(self, user_id: str, customer_id: str) -> None:
        """Persist ``customer_id`` on the user record."""


class IdentityDirectory(Protocol):
    """Looks up identity attributes held by the authentication provider."""

    def lookup_email(self, user_id: str) -> Optional[str]:
        ...


class PaymentProvider(Protocol):
    """External billing provider integration."""

    def create_customer(self, *, user_id: str, email: str) -> BillingCustomerRef:
        ...

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> Dict[str, object]:
        """Create a subscription-mode checkout session; returns ``id`` and ``url``."""


class ProvisioningEventLogger(Protocol):
    """Captures structured provisioning audit events."""

    def log(self, event: ProvisioningEvent) -> None:
        ...


_dataclass_kwargs = {"slots": True} if sys.version_info >= (3, 10) else {}


def _require_text(value: Optional[str], name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(message=f"{name} is required", code="missing_field")
    return str(value)


# Firestore document id limits: one path segment, at most 1500 bytes.
_MAX_USER_ID_BYTES = 1500


def _require_user_id(value: Optional[str]) -> str:
    user_id = _require_text(value, "userId")
    if (
        "/" in user_id
        or user_id in {".", ".."}
        or (user_id.startswith("__") and user_id.endswith("__"))
        or len(user_id.encode("utf-8")) > _MAX_USER_ID_BYTES
    ):
        raise ValidationError(message="Invalid user ID", code="invalid_user_id")
    return user_id


@dataclass(**_dataclass_kwargs)
class UserRecordResolver:
    """Resolves a user id to a validated :class:`UserRecord`."""

    repository: UserRepository
    directory: Optional[IdentityDirectory] = None

    def resolve(self, user_id: str) -> UserRecord:
        user_id = _require_user_id(user_id)
        record = self.repository.get_user(user_id)
        if record.email is None and self.directory is not None:
            email = self.directory.lookup_email(user_id)
            if email:
                record = record.model_copy(update={"email": email})
        return record


@dataclass(**_dataclass_kwargs)
class CustomerReconciler:
    """Maps a user to at most one billing customer.

    Check-then-create is not guarded across requests: two concurrent first
    checkouts for the same user can each create a customer.
    """

    provider: PaymentProvider

    def reconcile(self, user: UserRecord) -> CustomerReconciliation:
        if user.billing_customer_id:
            customer = BillingCustomerRef(
                customer_id=user.billing_customer_id,
                user_id=user.user_id,
                email=user.email,
            )
            return CustomerReconciliation(customer=customer, persisted=False)

        if not user.email:
            raise ValidationError(
                message=f"User {user.user_id} has no email address",
                code="missing_email",
            )

        customer = self.provider.create_customer(user_id=user.user_id, email=user.email)
        return CustomerReconciliation(customer=customer, persisted=True)


@dataclass(**_dataclass_kwargs)
class CheckoutSessionInitiator:
    """Builds one subscription-mode checkout session per call. Never retries."""

    provider: PaymentProvider
    config: "BillingConfig"

    def price_for(self, plan_id: str) -> str:
        plan = get_checkout_plan(plan_id)
        price_id = self.config.price_id_for(plan.key)
        if not price_id:
            logger.error("No price configured for plan %s (%s)", plan.key.value, plan.price_setting)
            raise ConfigurationMissing(
                message=f"{plan.price_setting} is not configured",
                missing=(plan.price_setting or plan.key.value,),
            )
        return price_id

    def create_session(
        self,
        customer_id: str,
        plan_id: str,
        *,
        user_id: str,
        redirect_base: Optional[str] = None,
    ) -> CheckoutSession:
        customer_id = _require_text(customer_id, "customerId")
        price_id = self.price_for(plan_id)
        metadata = {USER_METADATA_KEY: user_id, PLAN_METADATA_KEY: plan_id}

        session = self.provider.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=self.config.success_url(redirect_base),
            cancel_url=self.config.cancel_url(redirect_base),
            metadata=metadata,
        )
        return CheckoutSession(
            session_id=str(session.get("id") or ""),
            url=str(session.get("url") or ""),
            customer_id=customer_id,
            plan_key=PlanKey(plan_id),
            metadata=metadata,
        )


@dataclass(**_dataclass_kwargs)
class ProvisioningService:
    """Coordinates the resolve → reconcile → checkout pipeline."""

    resolver: UserRecordResolver
    reconciler: CustomerReconciler
    initiator: CheckoutSessionInitiator
    repository: UserRepository
    event_logger: ProvisioningEventLogger

    def create_checkout(self, *, user_id: Optional[str], plan_id: Optional[str]) -> CheckoutSession:
        if not user_id or not user_id.strip() or not plan_id or not plan_id.strip():
            raise ValidationError(message="User ID and plan ID are required", code="missing_field")
        user_id = _require_user_id(user_id)

        # Plan problems surface before any datastore or provider traffic.
        self.initiator.price_for(plan_id)

        user = self.resolver.resolve(user_id)
        reconciliation = self.reconciler.reconcile(user)
        customer = reconciliation.customer

        if reconciliation.persisted:
            self.event_logger.log(
                ProvisioningEvent(
                    event_type=ProvisioningEventType.CUSTOMER_CREATED,
                    user_id=user.user_id,
                    customer_id=customer.customer_id,
                )
            )
            self._attach_customer(user, customer)
        else:
            self.event_logger.log(
                ProvisioningEvent(
                    event_type=ProvisioningEventType.CUSTOMER_REUSED,
                    user_id=user.user_id,
                    customer_id=customer.customer_id,
                )
            )

        session = self.initiator.create_session(customer.customer_id, plan_id, user_id=user.user_id)
        self.event_logger.log(
            ProvisioningEvent(
                event_type=ProvisioningEventType.CHECKOUT_SESSION_CREATED,
                user_id=user.user_id,
                customer_id=customer.customer_id,
                metadata={"session_id": session.session_id, "plan_id": plan_id},
            )
        )
        return session

    def _attach_customer(self, user: UserRecord, customer: BillingCustomerRef) -> None:
        try:
            self.repository.attach_customer_id(user.user_id, customer.customer_id)
        except ProvisioningError:
            logger.warning(
                "Customer %s created for user %s but could not be attached to the user record",
                customer.customer_id,
                user.user_id,
                extra={"orphaned_customer_id": customer.customer_id},
            )
            raise
        self.event_logger.log(
            ProvisioningEvent(
                event_type=ProvisioningEventType.CUSTOMER_ATTACHED,
                user_id=user.user_id,
                customer_id=customer.customer_id,
            )
        )


__all__ = [
    "CheckoutSessionInitiator",
    "CustomerReconciler",
    "IdentityDirectory",
    "PaymentProvider",
    "ProvisioningEventLogger",
    "ProvisioningService",
    "UserRecordResolver",
    "UserRepository",
]
