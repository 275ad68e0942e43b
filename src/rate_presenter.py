# rate_presenter.py
# Orders provider rates cheapest-first and reshapes them for the API.

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Tuple


def _price_key(rate: Dict[str, Any]) -> Tuple[int, Decimal]:
    # Unparsable amounts sort after every priced rate
    try:
        amount = Decimal(str(rate.get("amount")))
    except (InvalidOperation, ValueError):
        return (1, Decimal("0"))
    if not amount.is_finite():
        return (1, Decimal("0"))
    return (0, amount)


def present(rates: List[Dict[str, Any]], insurance_applied: bool) -> List[Dict[str, Any]]:
    """
    Sort ascending by amount and project each rate to the public shape.

    sorted() is stable, so equal amounts keep the provider's order.
    insurance_included reflects the request, not the individual rate.
    """
    ordered = sorted(rates or [], key=_price_key)
    return [
        {
            "rate_id": r.get("rate_id"),
            "amount": r.get("amount"),
            "provider": r.get("provider"),
            "service": r.get("service"),
            "delivery_days": r.get("delivery_days"),
            "insurance_included": bool(insurance_applied),
        }
        for r in ordered
    ]
