from dataclasses import dataclass
from typing import Dict, List


class PlanNotFoundError(ValueError):
    def __init__(self, plan_id: str):
        super().__init__("Plan not found")
        self.plan_id = plan_id


@dataclass(frozen=True)
class Plan:
    id: str
    credits: int
    price: int          # в основных единицах валюты, шлюзу уходит price * 100
    description: str


# каталог тарифов, порядок = порядок отображения
PLANS: Dict[str, Plan] = {
    "Basic": Plan(id="Basic", credits=10, price=20, description="Best for personal use."),
    "Advanced": Plan(id="Advanced", credits=30, price=50, description="Best for business use."),
    "Premium": Plan(id="Premium", credits=70, price=100, description="Best for enterprise use."),
}


def get_plan(plan_id: str) -> Plan:
    plan = PLANS.get(plan_id)
    if plan is None:
        raise PlanNotFoundError(plan_id)
    return plan


def list_plans() -> List[Plan]:
    return list(PLANS.values())
