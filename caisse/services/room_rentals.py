import logging

from sqlalchemy.orm import Session

from caisse.errors import ValidationFailed
from caisse.models.core import PaymentMethod, RoomRental, RoomType, Transaction, TransactionType
from caisse.services.daily_stats import recompute_days
from caisse.services.pricing import price_for
from caisse.util.dates import from_db, local_day, to_utc

log = logging.getLogger(__name__)

FIELDS = ("room_type", "price", "client_name", "client_contact", "date", "start_time", "end_time", "notes",
          "payment_method")


def _check(fields: dict) -> None:
    if not (fields.get("client_name") or "").strip():
        raise ValidationFailed("clientName is required", field="clientName")
    if fields["end_time"] <= fields["start_time"]:
        raise ValidationFailed("endTime must be after startTime", field="endTime")


def _sync_transaction(db: Session, rental: RoomRental, tx: Transaction | None) -> Transaction:
    if tx is None:
        tx = Transaction(created_by_user_id=rental.created_by_user_id)
        db.add(tx)
    tx.type = TransactionType.ROOM_RENTAL
    tx.date = rental.date
    tx.amount = price_for(TransactionType.ROOM_RENTAL, amount=float(rental.price))
    tx.payment_method = rental.payment_method
    tx.client_name = rental.client_name
    tx.notes = f"Location {rental.room_type.value}" + (f" - {rental.notes}" if rental.notes else "")
    db.flush()
    return tx


def create_rental(db: Session, data: dict, user_id: int | None) -> RoomRental:
    fields = {k: data.get(k) for k in FIELDS}
    for k in ("date", "start_time", "end_time"):
        fields[k] = to_utc(fields[k])
    fields["room_type"] = RoomType(fields["room_type"])
    fields["payment_method"] = PaymentMethod(fields["payment_method"])
    fields["price"] = price_for(TransactionType.ROOM_RENTAL, amount=fields.get("price"))
    _check(fields)

    rental = RoomRental(**fields, created_by_user_id=user_id)
    db.add(rental)
    db.flush()
    tx = _sync_transaction(db, rental, None)
    rental.transaction_id = tx.id
    recompute_days(db, local_day(rental.date))
    log.info("room rental #%s (%s) for %s: %s DH", rental.id, rental.room_type.value, rental.client_name, rental.price)
    return rental


def update_rental(db: Session, rental: RoomRental, changes: dict) -> RoomRental:
    old_day = local_day(rental.date)
    fields = {k: getattr(rental, k) for k in FIELDS}
    for k in ("date", "start_time", "end_time"):
        fields[k] = from_db(fields[k])
    for k, v in changes.items():
        if k in FIELDS and v is not None:
            fields[k] = v
    for k in ("date", "start_time", "end_time"):
        fields[k] = to_utc(fields[k])
    fields["room_type"] = RoomType(fields["room_type"])
    fields["payment_method"] = PaymentMethod(fields["payment_method"])
    fields["price"] = price_for(TransactionType.ROOM_RENTAL, amount=float(fields["price"]))
    _check(fields)

    for k, v in fields.items():
        setattr(rental, k, v)
    tx = db.get(Transaction, rental.transaction_id) if rental.transaction_id else None
    tx = _sync_transaction(db, rental, tx)
    rental.transaction_id = tx.id
    recompute_days(db, old_day, local_day(rental.date))
    return rental


def delete_rental(db: Session, rental: RoomRental) -> None:
    day = local_day(rental.date)
    tx = db.get(Transaction, rental.transaction_id) if rental.transaction_id else None
    db.delete(rental)
    db.flush()
    if tx:
        db.delete(tx)
        db.flush()
    recompute_days(db, day)
