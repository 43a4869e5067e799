"""Failure conditions raised by the provisioning pipeline."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from fastapi import status
from fastapi.responses import JSONResponse

GENERIC_FAILURE_MESSAGE = "Failed to create checkout session"


@dataclass
class ProvisioningError(Exception):
    """Base failure carrying a stable code and the HTTP status it maps to.

    ``message`` is the internal description. Only 4xx conditions echo it to
    callers; server-side failures are reported with a generic message.
    """

    message: str
    code: str = "provisioning_failed"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __post_init__(self) -> None:
        super().__init__(self.message)

    @property
    def is_client_error(self) -> bool:
        return self.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR

    @property
    def public_message(self) -> str:
        return self.message if self.is_client_error else GENERIC_FAILURE_MESSAGE

    @property
    def payload(self) -> Dict[str, str]:
        """Serialized representation suitable for JSON responses."""

        return {"error": self.public_message}

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.payload)


@dataclass
class ValidationError(ProvisioningError):
    """Malformed or missing input, including malformed stored records."""

    message: str = "Invalid request"
    code: str = "invalid_request"
    status_code: int = status.HTTP_400_BAD_REQUEST


@dataclass
class UserNotFound(ProvisioningError):
    message: str = "User not found"
    code: str = "user_not_found"
    status_code: int = status.HTTP_404_NOT_FOUND


@dataclass
class InvalidPlan(ProvisioningError):
    message: str = "Unknown plan"
    code: str = "invalid_plan"
    status_code: int = status.HTTP_400_BAD_REQUEST


@dataclass
class Unavailable(ProvisioningError):
    """The datastore or the billing provider could not be reached."""

    message: str = "Backend unavailable"
    code: str = "unavailable"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


@dataclass
class ConfigurationMissing(Unavailable):
    """A required secret or setting is absent from the environment."""

    message: str = "Required configuration is missing"
    code: str = "configuration_missing"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    missing: Tuple[str, ...] = ()


@dataclass
class ProviderRejected(ProvisioningError):
    """The billing provider refused a customer operation."""

    message: str = "Billing provider rejected the request"
    code: str = "provider_rejected"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


@dataclass
class ProviderError(ProvisioningError):
    """The billing provider refused to open a checkout session."""

    message: str = "Billing provider failed to create the checkout session"
    code: str = "provider_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


__all__ = [
    "ConfigurationMissing",
    "GENERIC_FAILURE_MESSAGE",
    "InvalidPlan",
    "ProviderError",
    "ProviderRejected",
    "ProvisioningError",
    "Unavailable",
    "UserNotFound",
    "ValidationError",
]
