"""Domain models for pm_amm — immutable value objects, no I/O."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Pool:
    """Reserve pair backing one market's constant-product market maker."""

    yes_reserve: Decimal
    no_reserve: Decimal

    @property
    def k(self) -> Decimal:
        return self.yes_reserve * self.no_reserve


@dataclass(frozen=True)
class TradeResult:
    """Outcome of one AMM trade.

    For buys `amount_out` is shares received; for sells it is credits
    received (after fee). Prices/probabilities refer to the traded side.
    """

    new_pool: Pool
    amount_out: Decimal
    price_before: Decimal
    price_after: Decimal
    prob_before: Decimal
    prob_after: Decimal
    price_impact: Decimal      # percent
    effective_price: Decimal   # credits per share
