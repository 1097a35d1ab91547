# backend/price_history/services/splits.py
"""
Split reconciliation.

The provider returns closes that are adjusted backward through every split
that happened before the request was made. This module converts between that
convention and the price as it was actually quoted on each date:

    unadjusted(d) = adjusted(d) * product(ratio(s) for s in splits if s.date > d)

forward_adjust() applies the same factor to every OHLC field of a stored
series. It must only be applied to split-adjusted input: running it twice on
the same series scales the pre-split history twice. Callers own provenance.

The reconstruction trusts the provider's backward-adjustment convention. If
the provider ever returns unadjusted history, split_unadjusted_close() is the
single place to change; records keep the provider close so they can be
recomputed.

Malformed split definitions never reject a file. Non-positive or unparseable
parts become a 1:1 ratio, which is a no-op in every computation here.
"""

import logging
import re
from dataclasses import replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

from price_history.services.market_data.base import PriceRecord, SplitEvent
from price_history.utils.numbers import to_decimal

logger = logging.getLogger(__name__)

ONE = Decimal(1)

_FRACTION_PATTERN = re.compile(r"^\s*([^:/]+)\s*[:/]\s*([^:/]+)\s*$")


# =============================================================================
# RATIO PARSING
# =============================================================================

def clamp_ratio(numerator: Any, denominator: Any) -> tuple[Decimal, Decimal]:
    """
    Normalize split parts, falling back to 1:1 for anything unusable.

    Args:
        numerator: Raw numerator (number or string)
        denominator: Raw denominator (number or string)

    Returns:
        (numerator, denominator) as positive Decimals
    """
    num = to_decimal(numerator)
    den = to_decimal(denominator)
    if num is None or den is None or num <= 0 or den <= 0:
        logger.debug(f"Clamping malformed split ratio {numerator!r}:{denominator!r} to 1:1")
        return ONE, ONE
    return num, den


def _round_half_up(value: Decimal) -> Decimal:
    return value.quantize(ONE, rounding=ROUND_HALF_UP)


def parse_ratio_text(text: str | None) -> tuple[Decimal, Decimal]:
    """
    Parse a free-text split ratio.

    Accepted forms:
        "3:2" / "3/2"  -> (3, 2)
        "2"            -> (2, 1)    values > 1 mean round(value):1
        "0.5"          -> (1, 2)    values in (0, 1) mean 1:round(1/value)
        anything else  -> (1, 1)

    Returns:
        (numerator, denominator) as positive Decimals
    """
    if text is None:
        return ONE, ONE
    text = text.strip()
    if not text:
        return ONE, ONE

    match = _FRACTION_PATTERN.match(text)
    if match:
        return clamp_ratio(match.group(1), match.group(2))

    value = to_decimal(text)
    if value is None:
        return ONE, ONE
    if value > 1:
        return _round_half_up(value), ONE
    if 0 < value < 1:
        denominator = _round_half_up(ONE / value)
        return ONE, max(denominator, ONE)
    return ONE, ONE


def make_split(
        split_date: date,
        numerator: Any,
        denominator: Any,
        before_price: Decimal | None = None,
        after_price: Decimal | None = None,
) -> SplitEvent:
    """Build a SplitEvent, clamping malformed parts to 1:1."""
    num, den = clamp_ratio(numerator, denominator)
    return SplitEvent(
        date=split_date,
        numerator=num,
        denominator=den,
        before_price=before_price,
        after_price=after_price,
    )


# =============================================================================
# ADJUSTMENT
# =============================================================================

def split_factor_after(record_date: date, splits: Iterable[SplitEvent]) -> Decimal:
    """Product of the ratios of every split dated strictly after record_date."""
    factor = ONE
    for split in splits:
        if split.date > record_date:
            factor *= split.factor
    return factor


def split_unadjusted_close(
        close: Decimal,
        record_date: date,
        splits: Iterable[SplitEvent],
) -> Decimal:
    """Reconstruct the close as quoted on record_date from a split-adjusted close."""
    return close * split_factor_after(record_date, splits)


def _scale(value: Decimal | None, factor: Decimal) -> Decimal | None:
    return None if value is None else value * factor


def forward_adjust(
        series: Sequence[PriceRecord],
        splits: Sequence[SplitEvent],
) -> list[PriceRecord]:
    """
    Forward-adjust open/high/low/close through later splits.

    Every record is multiplied by the cumulative ratio of all splits dated
    strictly after it; records on or after the last split are unchanged.
    Record order is preserved.

    Args:
        series: Split-adjusted price records, any order
        splits: Split events, ascending by date

    Returns:
        New list of records (unchanged records are returned as-is)
    """
    if not splits:
        return list(series)

    ordered = sorted(splits, key=lambda s: s.date)
    adjusted: list[PriceRecord] = []

    for record in series:
        factor = split_factor_after(record.date, ordered)
        if factor == ONE:
            adjusted.append(record)
            continue
        adjusted.append(replace(
            record,
            close=record.close * factor,
            open=_scale(record.open, factor),
            high=_scale(record.high, factor),
            low=_scale(record.low, factor),
        ))

    return adjusted


def backfill_unadjusted_close(
        series: Sequence[PriceRecord],
        splits: Sequence[SplitEvent],
) -> list[PriceRecord]:
    """
    Fill split_unadjusted_close where it is missing.

    Records that already carry a value are left alone, so repeated calls are
    safe.
    """
    filled: list[PriceRecord] = []
    for record in series:
        if record.split_unadjusted_close is not None:
            filled.append(record)
            continue
        filled.append(replace(
            record,
            split_unadjusted_close=split_unadjusted_close(record.close, record.date, splits),
        ))
    return filled


def quoted_close(record: PriceRecord, splits: Sequence[SplitEvent]) -> Decimal:
    """The close as quoted on the record's date."""
    if record.split_unadjusted_close is not None:
        return record.split_unadjusted_close
    return split_unadjusted_close(record.close, record.date, splits)


def annotate_split_prices(
        splits: Sequence[SplitEvent],
        series: Sequence[PriceRecord],
) -> list[SplitEvent]:
    """
    Attach the quoted close around each split.

    before_price is the last quoted close strictly before the split date,
    after_price the first quoted close on or after it. Splits without
    surrounding prices keep whatever values they already had.

    Returns:
        Splits ascending by date
    """
    ordered_splits = sorted(splits, key=lambda s: s.date)
    if not series:
        return ordered_splits

    ordered_series = sorted(series, key=lambda r: r.date)
    annotated: list[SplitEvent] = []

    for split in ordered_splits:
        before = None
        after = None
        for record in ordered_series:
            if record.date < split.date:
                before = record
            else:
                after = record
                break

        annotated.append(replace(
            split,
            before_price=quoted_close(before, ordered_splits) if before else split.before_price,
            after_price=quoted_close(after, ordered_splits) if after else split.after_price,
        ))

    return annotated
