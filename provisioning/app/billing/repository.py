"""Firebase-backed persistence and identity lookups for provisioning."""
from __future__ import annotations

import logging
from typing import Optional

from firebase_admin import auth
from firebase_admin import exceptions as firebase_exceptions
from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from pydantic import ValidationError as PydanticValidationError

from ..resources import BackendResources, Degraded
from .errors import Unavailable, UserNotFound, ValidationError
from .models import UserRecord

logger = logging.getLogger(__name__)

# Field read by the downstream payment webhook; keep the name stable.
CUSTOMER_ID_FIELD = "stripeCustomerId"

_TRANSPORT_ERRORS = (google_exceptions.GoogleAPICallError, google_exceptions.RetryError)


class FirestoreUserRepository:
    """Reads and updates user profile documents in Firestore."""

    def __init__(self, resources: BackendResources, *, collection: Optional[str] = None) -> None:
        self._resources = resources
        self._collection = collection or resources.config.users_collection

    def _client(self):
        result = self._resources.datastore()
        if isinstance(result, Degraded):
            error = result.error()
            logger.error("User datastore unavailable: %s", error.message)
            raise error
        return result.client

    def _document(self, user_id: str):
        if not user_id or "/" in user_id:
            raise ValidationError(message="Invalid user ID", code="invalid_user_id")
        try:
            return self._client().collection(self._collection).document(user_id)
        except ValueError as exc:
            raise ValidationError(message="Invalid user ID", code="invalid_user_id") from exc

    def get_user(self, user_id: str) -> UserRecord:
        """Load the user document and validate it into a :class:`UserRecord`."""

        document = self._document(user_id)
        try:
            snapshot = document.get()
        except _TRANSPORT_ERRORS as exc:
            raise Unavailable(message=f"Failed to read user {user_id}: {exc}") from exc

        if not snapshot.exists:
            raise UserNotFound(message="User not found")

        data = snapshot.to_dict() or {}
        if not data:
            raise UserNotFound(message="User not found", code="user_record_empty")

        try:
            return UserRecord.model_validate({**data, "user_id": user_id})
        except PydanticValidationError as exc:
            raise ValidationError(
                message=f"User record {user_id} is malformed",
                code="malformed_user_record",
            ) from exc

    def attach_customer_id(self, user_id: str, customer_id: str) -> None:
        """Write the billing customer id back to the user document."""

        document = self._document(user_id)
        try:
            document.update(
                {
                    CUSTOMER_ID_FIELD: customer_id,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                }
            )
        except google_exceptions.NotFound as exc:
            raise UserNotFound(message="User not found") from exc
        except _TRANSPORT_ERRORS as exc:
            raise Unavailable(message=f"Failed to update user {user_id}: {exc}") from exc
        logger.info("Attached billing customer %s to user %s", customer_id, user_id)


class FirebaseIdentityDirectory:
    """Looks up identity attributes through Firebase auth administration."""

    def __init__(self, resources: BackendResources) -> None:
        self._resources = resources

    def lookup_email(self, user_id: str) -> Optional[str]:
        result = self._resources.auth_admin()
        client = result.fallback if isinstance(result, Degraded) else result.client
        try:
            user = client.get_user(user_id)
        except auth.UserNotFoundError:
            return None
        except ValueError:
            logger.warning("Auth admin rejected uid %r; treating email as unknown", user_id)
            return None
        except firebase_exceptions.FirebaseError as exc:
            raise Unavailable(message=f"Failed to look up auth user {user_id}: {exc}") from exc
        return user.email or None


__all__ = ["CUSTOMER_ID_FIELD", "FirebaseIdentityDirectory", "FirestoreUserRepository"]
