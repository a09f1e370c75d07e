import logging
from datetime import datetime, timezone

from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from caisse.errors import ValidationFailed
from caisse.models.core import (
    PaymentMethod, Product, RoomRental, StockMovement, Transaction, TransactionType,
)
from caisse.services.daily_stats import recompute_days
from caisse.services.inventory import consume_for_transaction
from caisse.services.pricing import _money, price_for
from caisse.util.audit import log_audit
from caisse.util.dates import add_months, business_tz, from_db, local_day, to_utc

log = logging.getLogger(__name__)

# a room rental owns these fields on its transaction
RENTAL_OWNED = ("date", "type", "amount", "payment_method", "client_name")
# columns that cannot be cleared
REQUIRED = ("date", "type", "payment_method")

EDITABLE = ("date", "type", "amount", "payment_method", "client_name", "client_email", "notes", "items",
            "subscription_end_date")


def _enum_or_fail(enum_cls, value, field: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationFailed(f"invalid {field}: {value!r}", field=field)


def normalize_items(db: Session, items: list[dict] | None) -> list[dict]:
    """Validate cafe lines against the catalogue and fill name/price from it when missing."""
    if not items:
        raise ValidationFailed("a cafe order needs at least one item", field="items")
    out = []
    for raw in items:
        product_id = raw.get("product_id", raw.get("productId"))
        product = db.get(Product, product_id) if product_id is not None else None
        if not product or product.deleted_at is not None:
            raise ValidationFailed(f"unknown product {product_id}", field="items")
        if not product.is_active:
            raise ValidationFailed(f"product {product.name} is not on sale", field="items")
        qty = raw.get("quantity")
        if qty is None or int(qty) != qty or qty < 1:
            raise ValidationFailed(f"invalid quantity for {product.name}", field="items")
        price = raw.get("price")
        if price is None:
            price = float(product.price)
        if price < 0:
            raise ValidationFailed(f"negative price for {product.name}", field="items")
        out.append({
            "productId": product.id,
            "name": raw.get("name") or product.name,
            "price": _money(price),
            "quantity": int(qty),
        })
    return out


def _validate(db: Session, fields: dict, check_items: bool = True) -> dict:
    """Apply per-type rules to a complete set of transaction fields."""
    tx_type = _enum_or_fail(TransactionType, fields.get("type"), "type")
    fields["type"] = tx_type
    fields["payment_method"] = _enum_or_fail(PaymentMethod, fields.get("payment_method"), "paymentMethod")

    if tx_type == TransactionType.SUBSCRIPTION and not (fields.get("client_name") or "").strip():
        raise ValidationFailed("clientName is required for subscriptions", field="clientName")

    if tx_type == TransactionType.CAFE and (check_items or not fields.get("items")):
        fields["items"] = normalize_items(db, fields.get("items"))
    elif tx_type == TransactionType.CAFE:
        # historical lines stay valid even if a product was retired since
        fields["items"] = list(fields["items"])
    else:
        fields["items"] = None

    fields["amount"] = price_for(tx_type, fields["items"], fields.get("amount"))

    if tx_type == TransactionType.SUBSCRIPTION:
        if fields.get("subscription_end_date") is None:
            local = fields["date"].astimezone(business_tz())
            fields["subscription_end_date"] = to_utc(add_months(local, 1))
        else:
            fields["subscription_end_date"] = to_utc(fields["subscription_end_date"])
    else:
        fields["subscription_end_date"] = None
    return fields


def record_transaction(db: Session, data: dict, user_id: int | None) -> tuple[Transaction, list[dict]]:
    """Persist a new transaction, refresh its day's stats and, for cafe
    orders, consume stock. Returns the transaction and any stock warnings.
    The caller commits.
    """
    fields = {k: data.get(k) for k in EDITABLE}
    fields["date"] = to_utc(data.get("date") or datetime.now(timezone.utc))
    fields = _validate(db, fields)

    tx = Transaction(**fields, created_by_user_id=user_id)
    db.add(tx)
    db.flush()

    warnings: list[dict] = []
    if tx.type == TransactionType.CAFE:
        _, warnings = consume_for_transaction(db, tx, user_id)

    recompute_days(db, local_day(tx.date))
    log.info("recorded %s transaction #%s: %s DH (%s)", tx.type.value, tx.id, tx.amount, tx.payment_method.value)
    return tx, warnings


def snapshot(tx: Transaction) -> dict:
    return {
        "date": from_db(tx.date).isoformat() if tx.date else None,
        "type": tx.type.value,
        "amount": float(tx.amount),
        "payment_method": tx.payment_method.value,
        "client_name": tx.client_name,
        "notes": tx.notes,
        "items": tx.items,
    }


def update_transaction(db: Session, tx: Transaction, changes: dict, user_id: int) -> Transaction:
    """Apply a partial edit. The amount is re-derived with the pricing rule
    of the resulting type and both the old and new day are recomputed.
    Stock already consumed by the original order is left as is. Fields a
    room rental owns on its transaction are only edited through the rental.
    """
    before = snapshot(tx)
    old_day = local_day(tx.date)

    fields = {k: getattr(tx, k) for k in EDITABLE}
    fields["date"] = from_db(tx.date)
    fields["subscription_end_date"] = from_db(tx.subscription_end_date)
    rental = db.query(RoomRental).filter(RoomRental.transaction_id == tx.id).first()
    touched = [k for k in RENTAL_OWNED if k in changes]
    if rental and touched:
        raise ValidationFailed(
            f"transaction #{tx.id} belongs to room rental #{rental.id}, edit it through /api/room-rentals",
            field=to_camel(touched[0]),
        )

    if changes.get("type") is not None and "amount" not in changes:
        fields["amount"] = None
    for k, v in changes.items():
        if k in EDITABLE and (v is not None or k not in REQUIRED):
            fields[k] = v
    fields["date"] = to_utc(fields["date"])
    fields = _validate(db, fields, check_items="items" in changes or "type" in changes)

    for k, v in fields.items():
        setattr(tx, k, v)
    db.flush()

    recompute_days(db, old_day, local_day(tx.date))
    log_audit(db, user_id, "transaction", tx.id, "UPDATE", before=before, after=snapshot(tx))
    return tx


def delete_transaction(db: Session, tx: Transaction, user_id: int) -> None:
    """Remove a transaction. Its stock movements stay in the ledger without
    the back-reference; a room rental carried by it goes with it.
    """
    day = local_day(tx.date)
    tx_id = tx.id
    before = snapshot(tx)
    (db.query(StockMovement)
       .filter(StockMovement.transaction_id == tx.id)
       .update({StockMovement.transaction_id: None}, synchronize_session=False))
    db.query(RoomRental).filter(RoomRental.transaction_id == tx.id).delete(synchronize_session=False)
    db.delete(tx)
    db.flush()
    recompute_days(db, day)
    log_audit(db, user_id, "transaction", tx_id, "DELETE", before=before)
