from decimal import Decimal

from src.pm_common.errors import ValidationError

MIN_BET_AMOUNT = Decimal(10)
MAX_BET_AMOUNT = Decimal(10_000)


def check_stake_limit(
    amount: Decimal,
    min_amount: Decimal = MIN_BET_AMOUNT,
    max_amount: Decimal = MAX_BET_AMOUNT,
) -> None:
    """Raise ValidationError(4001) if amount is not in [min_amount, max_amount]."""
    if amount <= 0:
        raise ValidationError("amount", f"must be positive, got {amount}")
    if not (min_amount <= amount <= max_amount):
        raise ValidationError("amount", f"{amount} must be in [{min_amount}, {max_amount}] credits")
