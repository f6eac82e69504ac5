from decimal import Decimal

from .models import PlanPreview

# (minimum deposit, weekly profit), highest threshold first
REWARD_TIERS: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("500000"), Decimal("15000")),
    (Decimal("100000"), Decimal("10000")),
    (Decimal("50000"), Decimal("5000")),
    (Decimal("30000"), Decimal("3000")),
    (Decimal("15000"), Decimal("1500")),
    (Decimal("5000"), Decimal("500")),
)

NOT_ELIGIBLE = Decimal("0")


def weekly_profit_for(deposit_amount: Decimal) -> Decimal:
    """Weekly profit for a deposit; zero means no reward program."""
    amount = Decimal(deposit_amount)
    for minimum, weekly_profit in REWARD_TIERS:
        if amount >= minimum:
            return weekly_profit
    return NOT_ELIGIBLE


def preview_plan(deposit_amount: Decimal) -> PlanPreview:
    weekly_profit = weekly_profit_for(deposit_amount)
    return PlanPreview(
        deposit=Decimal(deposit_amount),
        weekly_profit=weekly_profit,
        eligible=weekly_profit > NOT_ELIGIBLE,
    )
