"""Inert stand-ins handed out while Firebase credentials are unavailable.

Reads answer as if nothing exists; writes raise :class:`ConfigurationMissing`.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from firebase_admin import auth

from ..billing.errors import ConfigurationMissing


def missing_configuration_error(missing: Tuple[str, ...]) -> ConfigurationMissing:
    names = ", ".join(missing) or "credentials"
    return ConfigurationMissing(message=f"Firebase is not configured: {names}", missing=missing)


class InertSnapshot:
    """Snapshot of a document that does not exist."""

    def __init__(self, document_id: str) -> None:
        self.id = document_id
        self.exists = False

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return None


class InertDocument:
    def __init__(self, document_id: str, missing: Tuple[str, ...]) -> None:
        self.id = document_id
        self._missing = missing

    def get(self, *args: Any, **kwargs: Any) -> InertSnapshot:
        return InertSnapshot(self.id)

    def update(self, *args: Any, **kwargs: Any) -> None:
        raise missing_configuration_error(self._missing)


class InertCollection:
    def __init__(self, name: str, missing: Tuple[str, ...]) -> None:
        self.id = name
        self._missing = missing

    def document(self, document_id: str) -> InertDocument:
        return InertDocument(document_id, self._missing)


class InertDatastore:
    """Firestore-shaped object whose reads come back empty."""

    def __init__(self, missing: Tuple[str, ...]) -> None:
        self.missing = missing

    def collection(self, name: str) -> InertCollection:
        return InertCollection(name, self.missing)


class InertAuthAdmin:
    """Auth admin whose user lookups always report an unknown user."""

    def __init__(self, missing: Tuple[str, ...]) -> None:
        self.missing = missing

    def get_user(self, uid: str) -> Any:
        raise auth.UserNotFoundError(f"No user record found for the provided user ID: {uid}.")


__all__ = ["InertAuthAdmin", "InertDatastore"]
