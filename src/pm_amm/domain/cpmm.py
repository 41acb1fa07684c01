"""Constant Product Market Maker: yes_reserve * no_reserve = k.

Pure functions over Pool. Buying YES adds the stake to the NO reserve and
draws shares from the YES reserve; selling YES returns shares to the YES
reserve and draws credits from the NO reserve. NO trades are the mirror image.

Fees: buys charge on the input (stake * (1 - fee_bps/10000) enters the pool),
sells charge on the output (credits_out * (1 - fee_bps/10000)).

Rounding: anything leaving the pool is truncated to CREDIT_QUANTUM and the
pool keeps the remainder, so rounding never shrinks k.
"""

from decimal import Decimal

from src.pm_amm.domain.models import Pool, TradeResult
from src.pm_common.credits import (
    ZERO,
    fee_multiplier,
    quantize,
    quantize_down,
    to_decimal,
)
from src.pm_common.enums import BetSide
from src.pm_common.errors import ValidationError

_HUNDRED = Decimal(100)
_MAX_FEE_BPS = 10_000


# ---------------------------------------------------------------------------
# Prices and probabilities
# ---------------------------------------------------------------------------

def get_yes_probability(pool: Pool) -> Decimal:
    """P(YES) = no_reserve / (yes_reserve + no_reserve)."""
    return pool.no_reserve / (pool.yes_reserve + pool.no_reserve)


def get_no_probability(pool: Pool) -> Decimal:
    return 1 - get_yes_probability(pool)


def get_yes_price(pool: Pool) -> Decimal:
    """Price of a YES share in NO-reserve units: no_reserve / yes_reserve."""
    return pool.no_reserve / pool.yes_reserve


def get_no_price(pool: Pool) -> Decimal:
    return pool.yes_reserve / pool.no_reserve


def get_total_liquidity(pool: Pool) -> Decimal:
    return pool.yes_reserve + pool.no_reserve


def get_constant_product(pool: Pool) -> Decimal:
    return pool.k


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _to_amount(field: str, value: Decimal | int | float | str) -> Decimal:
    try:
        return to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(field, str(exc)) from None


def _require_positive(field: str, value: Decimal | int | float | str) -> Decimal:
    amount = _to_amount(field, value)
    if not amount.is_finite() or amount <= ZERO:
        raise ValidationError(field, f"must be positive, got {value}")
    return amount


def _check_fee(fee_bps: int) -> None:
    if not (0 <= fee_bps < _MAX_FEE_BPS):
        raise ValidationError("fee_bps", f"must be in [0, {_MAX_FEE_BPS}), got {fee_bps}")


def _check_pool(pool: Pool) -> None:
    if pool.yes_reserve <= ZERO or pool.no_reserve <= ZERO:
        raise ValidationError(
            "pool",
            f"reserves must be positive (yes={pool.yes_reserve}, no={pool.no_reserve})",
        )


def _impact(before: Decimal, after: Decimal) -> Decimal:
    return (after - before) / before * _HUNDRED


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------

def buy_yes(pool: Pool, stake: Decimal | int | float | str, fee_bps: int = 0) -> TradeResult:
    """Spend `stake` credits on YES shares."""
    amount = _require_positive("stake", stake)
    _check_fee(fee_bps)
    _check_pool(pool)

    effective_stake = quantize_down(amount * fee_multiplier(fee_bps))
    new_no = pool.no_reserve + effective_stake
    shares_out = quantize_down(pool.yes_reserve - pool.k / new_no)
    if shares_out <= ZERO:
        raise ValidationError("stake", f"{stake} is too small to buy a share")
    new_pool = Pool(yes_reserve=pool.yes_reserve - shares_out, no_reserve=new_no)

    price_before = get_yes_price(pool)
    price_after = get_yes_price(new_pool)
    return TradeResult(
        new_pool=new_pool,
        amount_out=shares_out,
        price_before=price_before,
        price_after=price_after,
        prob_before=get_yes_probability(pool),
        prob_after=get_yes_probability(new_pool),
        price_impact=_impact(price_before, price_after),
        effective_price=amount / shares_out,
    )


def buy_no(pool: Pool, stake: Decimal | int | float | str, fee_bps: int = 0) -> TradeResult:
    """Spend `stake` credits on NO shares."""
    amount = _require_positive("stake", stake)
    _check_fee(fee_bps)
    _check_pool(pool)

    effective_stake = quantize_down(amount * fee_multiplier(fee_bps))
    new_yes = pool.yes_reserve + effective_stake
    shares_out = quantize_down(pool.no_reserve - pool.k / new_yes)
    if shares_out <= ZERO:
        raise ValidationError("stake", f"{stake} is too small to buy a share")
    new_pool = Pool(yes_reserve=new_yes, no_reserve=pool.no_reserve - shares_out)

    price_before = get_no_price(pool)
    price_after = get_no_price(new_pool)
    return TradeResult(
        new_pool=new_pool,
        amount_out=shares_out,
        price_before=price_before,
        price_after=price_after,
        prob_before=get_no_probability(pool),
        prob_after=get_no_probability(new_pool),
        price_impact=_impact(price_before, price_after),
        effective_price=amount / shares_out,
    )


def sell_yes(pool: Pool, shares: Decimal | int | float | str, fee_bps: int = 0) -> TradeResult:
    """Return `shares` YES shares to the pool for credits."""
    quantity = _require_positive("shares", shares)
    _check_fee(fee_bps)
    _check_pool(pool)

    new_yes = pool.yes_reserve + quantity
    raw_out = quantize_down(pool.no_reserve - pool.k / new_yes)
    new_pool = Pool(yes_reserve=new_yes, no_reserve=pool.no_reserve - raw_out)
    credits_out = quantize_down(raw_out * fee_multiplier(fee_bps))

    price_before = get_yes_price(pool)
    price_after = get_yes_price(new_pool)
    return TradeResult(
        new_pool=new_pool,
        amount_out=credits_out,
        price_before=price_before,
        price_after=price_after,
        prob_before=get_yes_probability(pool),
        prob_after=get_yes_probability(new_pool),
        price_impact=_impact(price_before, price_after),
        effective_price=credits_out / quantity,
    )


def sell_no(pool: Pool, shares: Decimal | int | float | str, fee_bps: int = 0) -> TradeResult:
    """Return `shares` NO shares to the pool for credits."""
    quantity = _require_positive("shares", shares)
    _check_fee(fee_bps)
    _check_pool(pool)

    new_no = pool.no_reserve + quantity
    raw_out = quantize_down(pool.yes_reserve - pool.k / new_no)
    new_pool = Pool(yes_reserve=pool.yes_reserve - raw_out, no_reserve=new_no)
    credits_out = quantize_down(raw_out * fee_multiplier(fee_bps))

    price_before = get_no_price(pool)
    price_after = get_no_price(new_pool)
    return TradeResult(
        new_pool=new_pool,
        amount_out=credits_out,
        price_before=price_before,
        price_after=price_after,
        prob_before=get_no_probability(pool),
        prob_after=get_no_probability(new_pool),
        price_impact=_impact(price_before, price_after),
        effective_price=credits_out / quantity,
    )


def buy(pool: Pool, side: BetSide, stake: Decimal | int | float | str, fee_bps: int = 0) -> TradeResult:
    """Dispatch on bet side: 'this' buys YES, 'that' buys NO."""
    return buy_yes(pool, stake, fee_bps) if side == BetSide.THIS else buy_no(pool, stake, fee_bps)


def sell(pool: Pool, side: BetSide, shares: Decimal | int | float | str, fee_bps: int = 0) -> TradeResult:
    return sell_yes(pool, shares, fee_bps) if side == BetSide.THIS else sell_no(pool, shares, fee_bps)


def side_probability(pool: Pool, side: BetSide) -> Decimal:
    return get_yes_probability(pool) if side == BetSide.THIS else get_no_probability(pool)


def quote_yes(pool: Pool, stake: Decimal | int | float | str, fee_bps: int = 0) -> Decimal:
    """Shares a YES buy would return, without executing anything."""
    return buy_yes(pool, stake, fee_bps).amount_out


def quote_no(pool: Pool, stake: Decimal | int | float | str, fee_bps: int = 0) -> Decimal:
    return buy_no(pool, stake, fee_bps).amount_out


# ---------------------------------------------------------------------------
# Pool construction
# ---------------------------------------------------------------------------

def initialize_pool(liquidity: Decimal | int | float | str) -> Pool:
    """Equal reserves: 50/50 odds."""
    amount = _require_positive("liquidity", liquidity)
    return Pool(yes_reserve=amount, no_reserve=amount)


def initialize_pool_with_probability(
    total_liquidity: Decimal | int | float | str,
    yes_probability: Decimal | int | float | str,
) -> Pool:
    """Split `total_liquidity` so that P(YES) == yes_probability.

    P(YES) = no / (yes + no) with yes + no = L gives no = p*L, yes = (1-p)*L.
    """
    total = quantize(_require_positive("total_liquidity", total_liquidity))
    p = _to_amount("yes_probability", yes_probability)
    if not p.is_finite() or not (ZERO < p < 1):
        raise ValidationError("yes_probability", f"must be strictly between 0 and 1, got {p}")
    no_reserve = quantize(p * total)
    yes_reserve = total - no_reserve
    if yes_reserve <= ZERO or no_reserve <= ZERO:
        raise ValidationError(
            "yes_probability",
            f"{p} leaves an empty reserve at liquidity {total}",
        )
    return Pool(yes_reserve=yes_reserve, no_reserve=no_reserve)
