from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from workshop.core.config import settings

ZERO = Decimal("0")
CENT = Decimal("0.01")


class InvalidCostError(ValueError):
    pass


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        # str() keeps floats like 0.1 from dragging binary noise in
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidCostError(f"Not a monetary amount: {value!r}") from exc


def round_money(value: Any) -> float:
    return float(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def _entry_value(entry: Any) -> Any:
    if isinstance(entry, Mapping):
        return entry.get("value")
    return getattr(entry, "value", None)


def total_cost(entries: Iterable[Any] | None) -> Decimal:
    """Sum the ``value`` of every cost entry using exact decimal arithmetic.

    Negative entries are rejected, never clamped.
    """
    total = ZERO
    for entry in entries or ():
        amount = to_decimal(_entry_value(entry))
        if amount < 0:
            raise InvalidCostError("Cost entries cannot be negative")
        total += amount
    return total


def serialize_costs(entries: Iterable[Any] | None) -> list[dict]:
    serialized = []
    for entry in entries or ():
        if isinstance(entry, Mapping):
            name, value = entry.get("name"), entry.get("value")
        else:
            name, value = entry.name, entry.value
        amount = to_decimal(value)
        if amount < 0:
            raise InvalidCostError("Cost entries cannot be negative")
        serialized.append({"name": (name or "").strip(), "value": str(amount)})
    return serialized


def effective_costs(order: Any) -> list[dict]:
    """Itemized costs of an order, adapting legacy rows that only carry
    the flat ``internal_cost`` figure."""
    itemized = getattr(order, "costs", None) or []
    if itemized:
        return list(itemized)

    legacy = getattr(order, "internal_cost", None)
    if legacy is None:
        return []

    return [{"name": settings.LEGACY_COST_LABEL, "value": str(to_decimal(legacy))}]


def order_total_cost(order: Any) -> Decimal:
    return total_cost(effective_costs(order))
