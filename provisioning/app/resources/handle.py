"""Lazily initialized Firebase Admin resources shared across requests."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any, Optional, Tuple, Union

import firebase_admin
from firebase_admin import auth, credentials, firestore

from ..billing.errors import ConfigurationMissing
from ..config import FirebaseConfig
from .inert import InertAuthAdmin, InertDatastore, missing_configuration_error

logger = logging.getLogger(__name__)

DEFAULT_APP_NAME = "[DEFAULT]"


class ResourceState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class Ready:
    """A constructed backend client."""

    client: Any

    def require(self) -> Any:
        return self.client


@dataclass(frozen=True)
class Degraded:
    """Configuration is missing; ``fallback`` only serves inert reads."""

    missing: Tuple[str, ...]
    fallback: Any

    def error(self) -> ConfigurationMissing:
        return missing_configuration_error(self.missing)

    def require(self) -> Any:
        raise self.error()


ResourceResult = Union[Ready, Degraded]


class BackendResources:
    """Owns the Firebase app, Firestore client and auth admin client.

    Nothing is constructed until the first accessor call. Construction runs
    under a lock, so concurrent first requests install a single app. Missing
    credentials put the handle in the degraded state instead of raising.
    """

    def __init__(self, config: FirebaseConfig, *, app_name: str = DEFAULT_APP_NAME) -> None:
        self._config = config
        self._app_name = app_name
        self._lock = Lock()
        self._state = ResourceState.UNINITIALIZED
        self._app: Optional[firebase_admin.App] = None
        self._owns_app = False
        self._datastore: Any = None
        self._auth_admin: Any = None
        self._missing: Tuple[str, ...] = ()

    @property
    def config(self) -> FirebaseConfig:
        return self._config

    @property
    def state(self) -> ResourceState:
        return self._state

    @property
    def missing(self) -> Tuple[str, ...]:
        return self._missing

    def datastore(self) -> ResourceResult:
        """Firestore client, or the inert datastore when degraded."""

        with self._lock:
            self._initialize_locked()
            if self._state is ResourceState.READY:
                return Ready(self._datastore)
            return Degraded(missing=self._missing, fallback=InertDatastore(self._missing))

    def auth_admin(self) -> ResourceResult:
        """Firebase auth admin client, or an inert one when degraded."""

        with self._lock:
            self._initialize_locked()
            if self._state is ResourceState.READY:
                return Ready(self._auth_admin)
            return Degraded(missing=self._missing, fallback=InertAuthAdmin(self._missing))

    def close(self) -> None:
        """Release the Firebase app created by this handle."""

        with self._lock:
            if self._app is not None and self._owns_app:
                firebase_admin.delete_app(self._app)
                logger.info("Firebase Admin app %s deleted", self._app_name)
            self._app = None
            self._owns_app = False
            self._datastore = None
            self._auth_admin = None
            self._missing = ()
            self._state = ResourceState.UNINITIALIZED

    def _initialize_locked(self) -> None:
        if self._state is not ResourceState.UNINITIALIZED:
            return

        missing = self._config.missing_settings()
        if missing:
            logger.warning("Firebase Admin unavailable, missing settings: %s", ", ".join(missing))
            self._missing = missing
            self._state = ResourceState.DEGRADED
            return

        try:
            app = self._get_or_create_app()
        except ValueError:
            logger.error("Firebase Admin rejected the configured credentials", exc_info=True)
            self._missing = ("FIREBASE_CREDENTIALS",)
            self._state = ResourceState.DEGRADED
            return

        self._app = app
        self._datastore = firestore.client(app)
        self._auth_admin = auth.Client(app)
        self._state = ResourceState.READY
        logger.info("Firebase Admin initialized for project %s", self._config.project_id)

    def _get_or_create_app(self) -> firebase_admin.App:
        try:
            app = firebase_admin.get_app(self._app_name)
        except ValueError:
            pass
        else:
            self._owns_app = False
            return app

        if self._config.has_credentials_file:
            cred = credentials.Certificate(self._config.credentials_path)
        else:
            cred = credentials.Certificate(self._config.service_account_info())
        app = firebase_admin.initialize_app(
            cred,
            {"projectId": self._config.project_id},
            name=self._app_name,
        )
        self._owns_app = True
        return app


__all__ = ["BackendResources", "Degraded", "Ready", "ResourceResult", "ResourceState"]
