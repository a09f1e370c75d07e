from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from caisse.db import get_db
from caisse.deps import require_super_admin, require_user
from caisse.models.core import Transaction, TransactionType
from caisse.schemas.transactions import (
    TransactionIn, TransactionPatch, TransactionOut, TransactionCreated, TransactionTypeLiteral, StockWarning,
)
from caisse.services.transactions import record_transaction, update_transaction, delete_transaction
from caisse.util.dates import day_bounds, today

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _get_or_404(db: Session, tx_id: int) -> Transaction:
    tx = db.get(Transaction, tx_id)
    if not tx:
        raise HTTPException(404, detail="Transaction not found")
    return tx


def _dump_items(body) -> dict:
    data = body.model_dump(exclude_unset=True)
    if body.items is not None:
        data["items"] = [i.model_dump() for i in body.items]
    return data


@router.get("", response_model=List[TransactionOut])
def list_transactions(
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    sub: int = Depends(require_user),
):
    q = db.query(Transaction).order_by(Transaction.date.desc(), Transaction.id.desc())
    if limit:
        q = q.offset(offset).limit(limit)
    return q.all()


@router.get("/byDate", response_model=List[TransactionOut])
def by_date(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    sub: int = Depends(require_user),
):
    start = start_date or today()
    end = end_date or start
    if end < start:
        raise HTTPException(400, detail="endDate is before startDate")
    lo, hi = day_bounds(start, end)
    return (
        db.query(Transaction)
        .filter(Transaction.date >= lo, Transaction.date < hi)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .all()
    )


@router.get("/byType/{tx_type}", response_model=List[TransactionOut])
def by_type(tx_type: TransactionTypeLiteral, db: Session = Depends(get_db), sub: int = Depends(require_user)):
    return (
        db.query(Transaction)
        .filter(Transaction.type == TransactionType(tx_type))
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .all()
    )


@router.get("/{tx_id}", response_model=TransactionOut)
def get_transaction(tx_id: int, db: Session = Depends(get_db), sub: int = Depends(require_user)):
    return _get_or_404(db, tx_id)


@router.post("", response_model=TransactionCreated, status_code=201)
def create_transaction(body: TransactionIn, db: Session = Depends(get_db), sub: int = Depends(require_user)):
    tx, warnings = record_transaction(db, _dump_items(body), sub)
    db.commit()
    db.refresh(tx)
    out = TransactionCreated.model_validate(tx)
    out.stock_warnings = [StockWarning.model_validate(w) for w in warnings]
    return out


@router.patch("/{tx_id}", response_model=TransactionOut)
def edit_transaction(tx_id: int, body: TransactionPatch, db: Session = Depends(get_db), sub: int = Depends(require_super_admin)):
    tx = _get_or_404(db, tx_id)
    update_transaction(db, tx, _dump_items(body), sub)
    db.commit()
    db.refresh(tx)
    return tx


@router.delete("/{tx_id}")
def remove_transaction(tx_id: int, db: Session = Depends(get_db), sub: int = Depends(require_super_admin)):
    tx = _get_or_404(db, tx_id)
    delete_transaction(db, tx, sub)
    db.commit()
    return {"message": "Transaction deleted successfully"}
