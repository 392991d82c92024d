# Overview: Integer-cent arithmetic shared by pricing and ledger code.

"""
Money conventions (authoritative)

- All amounts are integer cents. Floats never enter a calculation.
- Tax rates are basis points: 1000 bps == 10%.
- Tax is computed per line on the discounted (net) amount and rounded to the
  nearest cent, half-up. Sale tax is the sum of line taxes.
"""

from __future__ import annotations

BPS_DENOMINATOR = 10_000


def round_half_up_div(numerator: int, denominator: int) -> int:
    """Integer division rounded half away from zero."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    sign = -1 if numerator < 0 else 1
    q, r = divmod(abs(numerator), denominator)
    if r * 2 >= denominator:
        q += 1
    return sign * q


def tax_cents(net_cents: int, tax_rate_bps: int) -> int:
    return round_half_up_div(net_cents * tax_rate_bps, BPS_DENOMINATOR)


def cents_to_str(cents: int | None) -> str | None:
    """Format integer cents as a fixed two-decimal string, e.g. -2200 -> "-22.00"."""
    if cents is None:
        return None
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{whole}.{frac:02d}"
