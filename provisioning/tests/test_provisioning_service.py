"""Unit tests for the resolve → reconcile → checkout pipeline."""
from __future__ import annotations

import pytest

from provisioning.app.billing import (
    ConfigurationMissing,
    CustomerReconciler,
    InvalidPlan,
    PlanKey,
    ProviderError,
    ProviderRejected,
    ProvisioningEventType,
    Unavailable,
    UserNotFound,
    UserRecord,
    ValidationError,
    get_checkout_plan,
)
from provisioning.app.billing.errors import GENERIC_FAILURE_MESSAGE
from provisioning.app.config import BillingConfig


def test_new_customer_is_created_and_attached_before_checkout(provisioning_components):
    repository, _, provider, event_logger, calls, service = provisioning_components
    repository.add("u1", email="a@x.com")

    session = service.create_checkout(user_id="u1", plan_id="premium")

    assert [call[0] for call in calls] == [
        "get_user",
        "create_customer",
        "attach_customer_id",
        "create_checkout_session",
    ]
    assert provider.customers == [
        {"id": "cus_1", "email": "a@x.com", "metadata": {"firebaseUID": "u1"}}
    ]
    assert repository.records["u1"].billing_customer_id == "cus_1"

    checkout = provider.checkout_sessions[0]
    assert checkout["mode"] == "subscription"
    assert checkout["customer"] == "cus_1"
    assert checkout["price"] == "price_premium"
    assert checkout["metadata"] == {"firebaseUID": "u1", "planId": "premium"}
    assert session.url == checkout["url"]
    assert session.plan_key == PlanKey.PREMIUM
    assert [event.event_type for event in event_logger.events] == [
        ProvisioningEventType.CUSTOMER_CREATED,
        ProvisioningEventType.CUSTOMER_ATTACHED,
        ProvisioningEventType.CHECKOUT_SESSION_CREATED,
    ]


def test_cached_customer_is_reused_verbatim(provisioning_components):
    repository, _, provider, event_logger, calls, service = provisioning_components
    repository.add("u2", email="b@x.com", customer_id="cus_123")

    service.create_checkout(user_id="u2", plan_id="premium")

    assert provider.customers == []
    assert ("attach_customer_id", "u2", "cus_123") not in calls
    assert provider.checkout_sessions[0]["customer"] == "cus_123"
    assert event_logger.events[0].event_type == ProvisioningEventType.CUSTOMER_REUSED


def test_second_checkout_reuses_customer_created_by_first(provisioning_components):
    repository, _, provider, _, _, service = provisioning_components
    repository.add("u1", email="a@x.com")

    service.create_checkout(user_id="u1", plan_id="premium")
    service.create_checkout(user_id="u1", plan_id="premium")

    assert len(provider.customers) == 1
    assert [s["customer"] for s in provider.checkout_sessions] == ["cus_1", "cus_1"]


def test_reconciler_creates_at_most_once_across_sequential_calls(provisioning_components):
    repository, _, provider, _, _, _ = provisioning_components
    reconciler = CustomerReconciler(provider=provider)
    repository.add("u1", email="a@x.com")

    first = reconciler.reconcile(repository.records["u1"])
    repository.attach_customer_id("u1", first.customer.customer_id)
    second = reconciler.reconcile(repository.records["u1"])

    assert first.persisted is True
    assert second.persisted is False
    assert second.customer.customer_id == first.customer.customer_id
    assert len(provider.customers) == 1


@pytest.mark.parametrize(
    "user_id, plan_id",
    [(None, "premium"), ("", "premium"), ("u1", None), ("u1", "   "), (None, None)],
)
def test_missing_identifiers_fail_before_any_downstream_call(provisioning_components, user_id, plan_id):
    repository, _, _, _, calls, service = provisioning_components
    repository.add("u1", email="a@x.com")

    with pytest.raises(ValidationError) as exc:
        service.create_checkout(user_id=user_id, plan_id=plan_id)

    assert exc.value.status_code == 400
    assert exc.value.payload == {"error": "User ID and plan ID are required"}
    assert calls == []


@pytest.mark.parametrize(
    "user_id",
    ["victim/billing/doc", "a/b", ".", "..", "__reserved__", "x" * 1501],
)
def test_user_id_must_be_a_single_document_segment(provisioning_components, user_id):
    repository, directory, provider, _, calls, service = provisioning_components
    repository.add("victim", email="v@x.com")

    with pytest.raises(ValidationError) as exc:
        service.create_checkout(user_id=user_id, plan_id="premium")

    assert exc.value.status_code == 400
    assert exc.value.code == "invalid_user_id"
    assert calls == []
    assert directory.lookups == []
    assert provider.customers == []


def test_resolver_rejects_path_shaped_user_id(provisioning_components):
    _, _, _, _, calls, service = provisioning_components

    with pytest.raises(ValidationError):
        service.resolver.resolve("victim/billing/doc")

    assert calls == []


def test_unknown_user_is_not_found_before_provider_calls(provisioning_components):
    _, _, provider, _, calls, service = provisioning_components

    with pytest.raises(UserNotFound) as exc:
        service.create_checkout(user_id="ghost", plan_id="premium")

    assert exc.value.status_code == 404
    assert calls == [("get_user", "ghost")]
    assert provider.customers == []
    assert provider.checkout_sessions == []


@pytest.mark.parametrize("plan_id", ["gold", "trial"])
def test_unknown_or_non_purchasable_plan_is_rejected_up_front(provisioning_components, plan_id):
    repository, _, _, _, calls, service = provisioning_components
    repository.add("u1", email="a@x.com")

    with pytest.raises(InvalidPlan) as exc:
        service.create_checkout(user_id="u1", plan_id=plan_id)

    assert exc.value.status_code == 400
    assert calls == []


def test_unconfigured_price_is_configuration_missing(provisioning_components):
    repository, _, _, _, calls, service = provisioning_components
    repository.add("u1", email="a@x.com")
    service.initiator.config = BillingConfig(secret_key="sk_test_123")

    with pytest.raises(ConfigurationMissing) as exc:
        service.create_checkout(user_id="u1", plan_id="premium")

    assert exc.value.missing == ("STRIPE_PREMIUM_PRICE_ID",)
    assert exc.value.payload == {"error": GENERIC_FAILURE_MESSAGE}
    assert calls == []


def test_email_falls_back_to_identity_directory(provisioning_components):
    repository, directory, provider, _, _, service = provisioning_components
    repository.add("u3")
    directory.emails["u3"] = "c@x.com"

    service.create_checkout(user_id="u3", plan_id="premium")

    assert directory.lookups == ["u3"]
    assert provider.customers[0]["email"] == "c@x.com"


def test_directory_is_skipped_when_record_has_email(provisioning_components):
    repository, directory, _, _, _, service = provisioning_components
    repository.add("u1", email="a@x.com")

    service.create_checkout(user_id="u1", plan_id="premium")

    assert directory.lookups == []


def test_customer_creation_requires_email(provisioning_components):
    repository, _, provider, _, _, service = provisioning_components
    repository.add("u4")

    with pytest.raises(ValidationError) as exc:
        service.create_checkout(user_id="u4", plan_id="premium")

    assert exc.value.code == "missing_email"
    assert provider.customers == []


def test_failed_write_back_prevents_checkout(provisioning_components):
    repository, _, provider, _, calls, service = provisioning_components
    repository.add("u1", email="a@x.com")
    repository.attach_error = Unavailable(message="firestore down")

    with pytest.raises(Unavailable):
        service.create_checkout(user_id="u1", plan_id="premium")

    assert len(provider.customers) == 1
    assert provider.checkout_sessions == []
    assert calls[-1][0] == "attach_customer_id"


def test_provider_rejection_propagates_without_retry(provisioning_components):
    repository, _, provider, _, calls, service = provisioning_components
    repository.add("u1", email="not-an-email")
    provider.customer_error = ProviderRejected(message="invalid email")

    with pytest.raises(ProviderRejected):
        service.create_checkout(user_id="u1", plan_id="premium")

    assert [call[0] for call in calls].count("create_customer") == 1


def test_session_failure_is_not_retried(provisioning_components):
    repository, _, provider, _, calls, service = provisioning_components
    repository.add("u2", email="b@x.com", customer_id="cus_123")
    provider.session_error = ProviderError(message="No such price")

    with pytest.raises(ProviderError) as exc:
        service.create_checkout(user_id="u2", plan_id="premium")

    assert exc.value.payload == {"error": GENERIC_FAILURE_MESSAGE}
    assert [call[0] for call in calls].count("create_checkout_session") == 1


def test_initiator_uses_redirect_base_and_literal_session_placeholder(provisioning_components):
    _, _, provider, _, _, service = provisioning_components

    service.initiator.create_session("cus_9", "premium", user_id="u9", redirect_base="https://example.test/")

    checkout = provider.checkout_sessions[0]
    assert checkout["success_url"] == "https://example.test/trial-success?session_id={CHECKOUT_SESSION_ID}"
    assert checkout["cancel_url"] == "https://example.test/"


def test_initiator_rejects_empty_customer(provisioning_components):
    _, _, provider, _, _, service = provisioning_components

    with pytest.raises(ValidationError):
        service.initiator.create_session("", "premium", user_id="u9")

    assert provider.checkout_sessions == []


def test_catalog_lookup():
    assert get_checkout_plan("premium").key == PlanKey.PREMIUM
    with pytest.raises(InvalidPlan):
        get_checkout_plan("trial")


def test_user_record_accepts_either_customer_field_name():
    legacy = UserRecord.model_validate({"user_id": "u1", "stripeCustomerId": "cus_a"})
    renamed = UserRecord.model_validate({"user_id": "u1", "billingCustomerId": "cus_b"})
    blank = UserRecord.model_validate({"user_id": "u1", "stripeCustomerId": "  "})

    assert legacy.billing_customer_id == "cus_a"
    assert renamed.billing_customer_id == "cus_b"
    assert blank.has_billing_customer is False
