from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import pytest

from provisioning.app.billing import (
    BillingCustomerRef,
    CheckoutSessionInitiator,
    CustomerReconciler,
    IdentityDirectory,
    PaymentProvider,
    PlanKey,
    ProvisioningEvent,
    ProvisioningEventLogger,
    ProvisioningService,
    UserNotFound,
    UserRecord,
    UserRecordResolver,
    UserRepository,
)
from provisioning.app.config import BillingConfig


class InMemoryUserRepository(UserRepository):
    def __init__(self, calls: List[Tuple[str, ...]]) -> None:
        self.records: Dict[str, UserRecord] = {}
        self.calls = calls
        self.attach_error: Optional[Exception] = None

    def add(self, user_id: str, *, email: Optional[str] = None, customer_id: Optional[str] = None) -> None:
        self.records[user_id] = UserRecord(user_id=user_id, email=email, billing_customer_id=customer_id)

    def get_user(self, user_id: str) -> UserRecord:
        self.calls.append(("get_user", user_id))
        record = self.records.get(user_id)
        if record is None:
            raise UserNotFound(message="User not found")
        return record

    def attach_customer_id(self, user_id: str, customer_id: str) -> None:
        self.calls.append(("attach_customer_id", user_id, customer_id))
        if self.attach_error is not None:
            raise self.attach_error
        record = self.records[user_id]
        self.records[user_id] = record.model_copy(update={"billing_customer_id": customer_id})


class FakeDirectory(IdentityDirectory):
    def __init__(self) -> None:
        self.emails: Dict[str, str] = {}
        self.lookups: List[str] = []

    def lookup_email(self, user_id: str) -> Optional[str]:
        self.lookups.append(user_id)
        return self.emails.get(user_id)


class FakePaymentProvider(PaymentProvider):
    def __init__(self, calls: List[Tuple[str, ...]]) -> None:
        self.calls = calls
        self.customers: List[Dict[str, object]] = []
        self.checkout_sessions: List[Dict[str, object]] = []
        self.customer_error: Optional[Exception] = None
        self.session_error: Optional[Exception] = None

    def create_customer(self, *, user_id: str, email: str) -> BillingCustomerRef:
        self.calls.append(("create_customer", user_id))
        if self.customer_error is not None:
            raise self.customer_error
        customer_id = f"cus_{len(self.customers) + 1}"
        self.customers.append(
            {"id": customer_id, "email": email, "metadata": {"firebaseUID": user_id}}
        )
        return BillingCustomerRef(customer_id=customer_id, user_id=user_id, email=email)

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> Dict[str, object]:
        self.calls.append(("create_checkout_session", customer_id))
        if self.session_error is not None:
            raise self.session_error
        session_id = f"cs_{len(self.checkout_sessions) + 1}"
        payload = {
            "id": session_id,
            "url": f"https://checkout.provider.test/{session_id}",
            "customer": customer_id,
            "price": price_id,
            "mode": "subscription",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": dict(metadata),
        }
        self.checkout_sessions.append(payload)
        return payload


class FakeEventLogger(ProvisioningEventLogger):
    def __init__(self) -> None:
        self.events: List[ProvisioningEvent] = []

    def log(self, event: ProvisioningEvent) -> None:
        self.events.append(event)


@pytest.fixture
def billing_config() -> BillingConfig:
    return BillingConfig(
        secret_key="sk_test_123",
        price_ids={PlanKey.PREMIUM: "price_premium"},
    )


@pytest.fixture
def provisioning_components(billing_config: BillingConfig):
    calls: List[Tuple[str, ...]] = []
    repository = InMemoryUserRepository(calls)
    directory = FakeDirectory()
    provider = FakePaymentProvider(calls)
    event_logger = FakeEventLogger()
    service = ProvisioningService(
        resolver=UserRecordResolver(repository=repository, directory=directory),
        reconciler=CustomerReconciler(provider=provider),
        initiator=CheckoutSessionInitiator(provider=provider, config=billing_config),
        repository=repository,
        event_logger=event_logger,
    )
    return repository, directory, provider, event_logger, calls, service
