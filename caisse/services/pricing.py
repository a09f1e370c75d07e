from decimal import Decimal, ROUND_HALF_UP
from caisse.config import settings
from caisse.errors import ValidationFailed
from caisse.models.core import TransactionType

def _money(x) -> float:
    return float(Decimal(str(x)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))

def _q3(x) -> Decimal:
    # use string to avoid float binary artifacts
    return Decimal(str(x)).quantize(Decimal("0.001"))

def cafe_total(items: list[dict]) -> float:
    total = Decimal("0")
    for it in items:
        total += Decimal(str(it["price"])) * Decimal(str(it["quantity"]))
    return _money(total)

def price_for(tx_type: TransactionType, items: list[dict] | None = None, amount: float | None = None) -> float:
    """Amount to persist for a transaction of ``tx_type``.

    entry and subscription are fixed-price, cafe is the sum of its lines and
    room rentals carry whatever amount the cashier agreed on.
    """
    if amount is not None and amount < 0:
        raise ValidationFailed("amount must not be negative", field="amount")
    if tx_type == TransactionType.ENTRY:
        return _money(settings.ENTRY_PRICE)
    if tx_type == TransactionType.SUBSCRIPTION:
        return _money(settings.SUBSCRIPTION_PRICE)
    if tx_type == TransactionType.CAFE:
        return cafe_total(items or [])
    if amount is None:
        raise ValidationFailed("amount is required for room rentals", field="amount")
    return _money(amount)
