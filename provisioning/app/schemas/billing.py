"""API schemas for subscription endpoints."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..billing import CheckoutSession


class CreateCheckoutRequest(BaseModel):
    # Both fields are required; absence is reported as a 400 by the service.
    user_id: Optional[str] = Field(default=None, alias="userId")
    plan_id: Optional[str] = Field(default=None, alias="planId")

    model_config = ConfigDict(populate_by_name=True)


class CreateCheckoutResponse(BaseModel):
    url: str

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_session(cls, session: CheckoutSession) -> "CreateCheckoutResponse":
        return cls(url=session.url)


class ErrorResponse(BaseModel):
    error: str
