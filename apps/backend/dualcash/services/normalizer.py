"""
Currency normalization to USD.

Amounts recorded in VES, or in USD at a non-official rate, are re-expressed
in USD measured at the official (bcv) rate. The rate that was actually used
is returned next to the amount so it can be stored with the record.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping

from dualcash.models import Currency, RateType
from dualcash.services.rates import RateSnapshot
from dualcash.utils.money import Number, round2, to_decimal


@dataclass(frozen=True)
class NormalizedAmount:
    final_amount: Decimal
    rate_value: Decimal | None = None


def normalize_to_usd(
    amount: Number,
    currency: Currency | str,
    rate_type: RateType | str | None,
    rates: RateSnapshot | Mapping[str, Number],
) -> NormalizedAmount:
    """Convert ``amount`` to USD.

    - VES: ``amount / rates[rate_type]``
    - USD with a rate type (arbitrage): ``amount * rates[rate_type] / rates.bcv``
    - USD without a rate type: unchanged, no rate reported

    Rounding happens once, on the final value. ``rate_type`` must be one of the
    known regimes when ``currency`` is VES; callers validate that beforehand.

    Example:
        >>> normalize_to_usd(365, "VES", "bcv", {"bcv": 36.5})
        NormalizedAmount(final_amount=Decimal('10.00'), rate_value=Decimal('36.5'))
    """
    currency = Currency(currency)
    value = to_decimal(amount)

    if currency is Currency.VES:
        rate_value = _rate_of(rates, RateType(rate_type))
        return NormalizedAmount(final_amount=round2(value / rate_value), rate_value=rate_value)

    if rate_type is not None:
        rate_value = _rate_of(rates, RateType(rate_type))
        official = _rate_of(rates, RateType.BCV)
        return NormalizedAmount(final_amount=round2(value * rate_value / official), rate_value=rate_value)

    return NormalizedAmount(final_amount=value)


def needs_rates(currency: Currency | str, rate_type: RateType | str | None) -> bool:
    """True when ``normalize_to_usd`` will read from the rate snapshot."""
    return Currency(currency) is Currency.VES or rate_type is not None


def _rate_of(rates: RateSnapshot | Mapping[str, Number], rate_type: RateType) -> Decimal:
    if isinstance(rates, RateSnapshot):
        return rates.rate_for(rate_type)
    return to_decimal(rates[rate_type.value])
