"""API routes exposing subscription checkout."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..billing import ProvisioningService
from ..schemas.billing import CreateCheckoutRequest, CreateCheckoutResponse, ErrorResponse
from ..services.billing import get_provisioning_service

router = APIRouter(prefix="/subscription", tags=["subscription"])


@router.post(
    "/create-checkout",
    response_model=CreateCheckoutResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
def create_checkout(
    payload: CreateCheckoutRequest,
    *,
    service: ProvisioningService = Depends(get_provisioning_service),
) -> CreateCheckoutResponse:
    session = service.create_checkout(user_id=payload.user_id, plan_id=payload.plan_id)
    return CreateCheckoutResponse.from_session(session)
