"""Configuration helpers for Firebase and Stripe access."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from .billing.models import PlanKey

DEFAULT_PRODUCTION_BASE_URL = "https://webtutorialai.com"
DEFAULT_STRIPE_API_VERSION = "2024-12-18.acacia"
PRODUCTION_ENV = "production"

SUCCESS_PATH = "/trial-success?session_id={CHECKOUT_SESSION_ID}"
CANCEL_PATH = "/"


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True)
class FirebaseConfig:
    """Credentials and locations for the Firebase Admin SDK."""

    project_id: Optional[str]
    client_email: Optional[str]
    private_key: Optional[str]
    credentials_path: Optional[str]
    users_collection: str = "users"

    @property
    def has_credentials_file(self) -> bool:
        return bool(self.credentials_path) and Path(self.credentials_path).is_file()

    def missing_settings(self) -> Tuple[str, ...]:
        """Return the names of required settings that are not available."""

        missing = []
        if not self.project_id:
            missing.append("FIREBASE_PROJECT_ID")
        if self.has_credentials_file:
            return tuple(missing)
        if not self.client_email:
            missing.append("FIREBASE_CLIENT_EMAIL")
        if not self.private_key:
            missing.append("FIREBASE_PRIVATE_KEY")
        return tuple(missing)

    def service_account_info(self) -> Dict[str, str]:
        """Service-account mapping accepted by ``credentials.Certificate``."""

        return {
            "type": "service_account",
            "project_id": self.project_id or "",
            "client_email": self.client_email or "",
            "private_key": self.private_key or "",
            "token_uri": "https://oauth2.googleapis.com/token",
        }


def load_firebase_config(env: Optional[Mapping[str, str]] = None) -> FirebaseConfig:
    """Load :class:`FirebaseConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    private_key = _clean(env_mapping.get("FIREBASE_PRIVATE_KEY"))
    if private_key:
        # Keys pasted into dashboards usually arrive with escaped newlines.
        private_key = private_key.replace("\\n", "\n")

    return FirebaseConfig(
        project_id=_clean(env_mapping.get("FIREBASE_PROJECT_ID")),
        client_email=_clean(env_mapping.get("FIREBASE_CLIENT_EMAIL")),
        private_key=private_key,
        credentials_path=_clean(env_mapping.get("GOOGLE_APPLICATION_CREDENTIALS")),
        users_collection=_clean(env_mapping.get("FIREBASE_USERS_COLLECTION")) or "users",
    )


@dataclass(frozen=True)
class BillingConfig:
    """Stripe credentials, plan prices and redirect targets."""

    secret_key: Optional[str]
    price_ids: Dict[PlanKey, str] = field(default_factory=dict)
    api_version: str = DEFAULT_STRIPE_API_VERSION
    customer_idempotency: bool = False
    environment: str = "development"
    app_base_url: Optional[str] = None
    production_base_url: str = DEFAULT_PRODUCTION_BASE_URL

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION_ENV

    @property
    def redirect_base_url(self) -> str:
        """Base for checkout redirects.

        Only a production deployment may point redirects at ``APP_BASE_URL``;
        every other mode sends customers back to the production domain.
        """

        if self.is_production and self.app_base_url:
            return self.app_base_url.rstrip("/")
        return self.production_base_url.rstrip("/")

    def success_url(self, base_url: Optional[str] = None) -> str:
        base = (base_url or self.redirect_base_url).rstrip("/")
        return f"{base}{SUCCESS_PATH}"

    def cancel_url(self, base_url: Optional[str] = None) -> str:
        base = (base_url or self.redirect_base_url).rstrip("/")
        return f"{base}{CANCEL_PATH}"

    def price_id_for(self, plan_key: PlanKey) -> Optional[str]:
        return self.price_ids.get(plan_key)


def load_billing_config(env: Optional[Mapping[str, str]] = None) -> BillingConfig:
    """Load :class:`BillingConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    price_ids: Dict[PlanKey, str] = {}
    premium_price = _clean(env_mapping.get("STRIPE_PREMIUM_PRICE_ID"))
    if premium_price:
        price_ids[PlanKey.PREMIUM] = premium_price

    environment = (_clean(env_mapping.get("APP_ENV")) or "development").lower()

    return BillingConfig(
        secret_key=_clean(env_mapping.get("STRIPE_SECRET_KEY")),
        price_ids=price_ids,
        api_version=_clean(env_mapping.get("STRIPE_API_VERSION")) or DEFAULT_STRIPE_API_VERSION,
        customer_idempotency=_to_bool(env_mapping.get("STRIPE_CUSTOMER_IDEMPOTENCY"), default=False),
        environment=environment,
        app_base_url=_clean(env_mapping.get("APP_BASE_URL")),
        production_base_url=_clean(env_mapping.get("PRODUCTION_BASE_URL")) or DEFAULT_PRODUCTION_BASE_URL,
    )


__all__ = [
    "BillingConfig",
    "FirebaseConfig",
    "load_billing_config",
    "load_firebase_config",
]
