"""Subscription plan catalog and quota checks."""

from typing import Literal

from pydantic import BaseModel

PlanId = Literal["hobby", "pro", "proPlus"]

# Unbounded limits are stored as None.
UNLIMITED = None

LimitName = Literal["maxEvents", "maxTicketsPerEvent", "maxBenefits", "maxOrganizations"]


class PlanLimits(BaseModel):
    maxEvents: int | None
    maxTicketsPerEvent: int | None
    maxBenefits: int | None
    maxOrganizations: int | None
    watermark: bool
    support: bool


class Plan(BaseModel):
    """One subscription tier. `price` is in the base currency."""

    name: str
    price: str
    description: str
    features: list[str]
    limits: PlanLimits
    recommended: bool = False


PLANS: dict[str, Plan] = {
    "hobby": Plan(
        name="Hobby",
        price="0",
        description="For personal projects and getting started.",
        features=[
            "1 event",
            "5 tickets per event",
            "Up to 5 benefits per ticket",
            "1 Organization Page",
            "Tickets include 'GoPass' watermark",
            "Community support",
        ],
        limits=PlanLimits(
            maxEvents=1,
            maxTicketsPerEvent=5,
            maxBenefits=5,
            maxOrganizations=1,
            watermark=True,
            support=False,
        ),
    ),
    "pro": Plan(
        name="Pro",
        price="2",
        description="For professional organizers and growing businesses.",
        features=[
            "5 events",
            "Up to 8 tickets per event",
            "Up to 8 benefits per ticket",
            "2 Organization Pages",
            "No ticket watermark",
            "Email support",
        ],
        limits=PlanLimits(
            maxEvents=5,
            maxTicketsPerEvent=8,
            maxBenefits=8,
            maxOrganizations=2,
            watermark=False,
            support=True,
        ),
        recommended=True,
    ),
    "proPlus": Plan(
        name="Pro Plus",
        price="5",
        description="For large-scale events and dedicated needs.",
        features=[
            "Unlimited events",
            "Unlimited tickets",
            "Unlimited benefits",
            "Unlimited Organization Pages",
            "No ticket watermark",
            "24/7 priority support",
        ],
        limits=PlanLimits(
            maxEvents=UNLIMITED,
            maxTicketsPerEvent=UNLIMITED,
            maxBenefits=UNLIMITED,
            maxOrganizations=UNLIMITED,
            watermark=False,
            support=True,
        ),
    ),
}

DEFAULT_PLAN_ID = "hobby"


def get_plan(plan_id: str) -> Plan:
    """Return the plan for `plan_id`; raises `KeyError` for unknown ids."""

    try:
        return PLANS[plan_id]
    except KeyError:
        raise KeyError(f"unknown plan: {plan_id}") from None


def is_within_limit(plan_id: str, limit: LimitName, current_count: int) -> bool:
    """True when one more item may be created on top of `current_count`."""

    maximum = getattr(get_plan(plan_id).limits, limit)
    if maximum is UNLIMITED:
        return True
    return current_count < maximum
