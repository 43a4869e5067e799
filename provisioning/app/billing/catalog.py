"""Static catalog of subscription plans offered through checkout."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .errors import InvalidPlan
from .models import PlanKey


@dataclass(frozen=True)
class PlanDefinition:
    """Describes a plan and whether it can be bought through checkout."""

    key: PlanKey
    display_name: str
    checkout_enabled: bool
    price_setting: Optional[str] = None
    billing_period: Optional[str] = None


PLAN_CATALOG: Dict[PlanKey, PlanDefinition] = {
    PlanKey.TRIAL: PlanDefinition(
        key=PlanKey.TRIAL,
        display_name="7-Day Free Trial",
        checkout_enabled=False,
    ),
    PlanKey.PREMIUM: PlanDefinition(
        key=PlanKey.PREMIUM,
        display_name="Premium",
        checkout_enabled=True,
        price_setting="STRIPE_PREMIUM_PRICE_ID",
        billing_period="month",
    ),
}


def get_checkout_plan(plan_id: str) -> PlanDefinition:
    """Return the purchasable plan for ``plan_id`` or raise :class:`InvalidPlan`."""

    try:
        plan_key = PlanKey(plan_id)
    except ValueError as exc:
        raise InvalidPlan(message=f"Unknown plan: {plan_id}") from exc

    plan = PLAN_CATALOG[plan_key]
    if not plan.checkout_enabled:
        raise InvalidPlan(message=f"Plan {plan_id} cannot be purchased through checkout")
    return plan


__all__ = ["PLAN_CATALOG", "PlanDefinition", "get_checkout_plan"]
