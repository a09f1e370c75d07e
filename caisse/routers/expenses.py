from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List
from datetime import date, datetime, timezone

from caisse.db import get_db
from caisse.deps import require_admin, require_user
from caisse.models.core import Expense, ExpenseCategory, PaymentMethod
from caisse.schemas.expenses import ExpenseIn, ExpensePatch, ExpenseOut, ExpenseCategoryLiteral
from caisse.services.reports import expenses_in_range
from caisse.util.dates import to_utc, today

router = APIRouter(prefix="/api/expenses", tags=["expenses"])


def _get_or_404(db: Session, expense_id: int) -> Expense:
    e = db.get(Expense, expense_id)
    if not e or e.deleted_at is not None:
        raise HTTPException(404, detail="Expense not found")
    return e


def _coerce(data: dict) -> dict:
    if data.get("category"):
        data["category"] = ExpenseCategory(data["category"])
    if data.get("payment_method"):
        data["payment_method"] = PaymentMethod(data["payment_method"])
    if data.get("date"):
        data["date"] = to_utc(data["date"])
    return data


@router.get("", response_model=List[ExpenseOut])
def list_expenses(db: Session = Depends(get_db), sub: int = Depends(require_user)):
    return db.query(Expense).filter(Expense.deleted_at.is_(None)).order_by(Expense.date.desc()).all()


@router.get("/byDate", response_model=List[ExpenseOut])
def by_date(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    sub: int = Depends(require_user),
):
    start = start_date or today()
    return expenses_in_range(db, start, end_date or start)


@router.get("/byCategory/{category}", response_model=List[ExpenseOut])
def by_category(category: ExpenseCategoryLiteral, db: Session = Depends(get_db), sub: int = Depends(require_user)):
    return (
        db.query(Expense)
        .filter(Expense.deleted_at.is_(None), Expense.category == ExpenseCategory(category))
        .order_by(Expense.date.desc())
        .all()
    )


@router.get("/{expense_id}", response_model=ExpenseOut)
def get_expense(expense_id: int, db: Session = Depends(get_db), sub: int = Depends(require_user)):
    return _get_or_404(db, expense_id)


@router.post("", response_model=ExpenseOut, status_code=201)
def create_expense(body: ExpenseIn, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    data = _coerce(body.model_dump())
    data["date"] = data.get("date") or datetime.now(timezone.utc)
    e = Expense(**data, created_by_user_id=sub)
    db.add(e)
    db.commit()
    db.refresh(e)
    return e


@router.patch("/{expense_id}", response_model=ExpenseOut)
def update_expense(expense_id: int, body: ExpensePatch, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    e = _get_or_404(db, expense_id)
    for k, v in _coerce(body.model_dump(exclude_unset=True)).items():
        if v is not None or k == "description":
            setattr(e, k, v)
    db.commit()
    db.refresh(e)
    return e


@router.delete("/{expense_id}")
def delete_expense(expense_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    e = _get_or_404(db, expense_id)
    e.deleted_at = datetime.now(timezone.utc)
    db.commit()
    return {"message": "Expense deleted successfully"}
