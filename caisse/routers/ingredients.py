from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime, timezone

from caisse.db import get_db
from caisse.deps import require_admin
from caisse.models.core import Ingredient, StockMovement
from caisse.schemas.inventory import (
    IngredientIn, IngredientPatch, IngredientOut, IngredientStockOp, IngredientAdjust, StockMovementOut,
)
from caisse.services import inventory as stock
from caisse.util.dates import to_utc

router = APIRouter(prefix="/api", tags=["ingredients"])


def _get_or_404(db: Session, ingredient_id: int) -> Ingredient:
    ing = db.get(Ingredient, ingredient_id)
    if not ing or ing.deleted_at is not None:
        raise HTTPException(404, detail="Ingredient not found")
    return ing


@router.get("/ingredients", response_model=List[IngredientOut])
def list_ingredients(db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return db.query(Ingredient).filter(Ingredient.deleted_at.is_(None)).order_by(Ingredient.name.asc()).all()


@router.get("/ingredients/low-stock", response_model=List[IngredientOut])
def low_stock(threshold: float | None = Query(None, ge=0), db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    """Ingredients at or under ``threshold``, or under their own minimum when none is given."""
    return stock.low_stock_ingredients(db, threshold)


@router.get("/ingredients/{ingredient_id}", response_model=IngredientOut)
def get_ingredient(ingredient_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return _get_or_404(db, ingredient_id)


@router.post("/ingredients", response_model=IngredientOut, status_code=201)
def create_ingredient(body: IngredientIn, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    data = body.model_dump()
    if data.get("expiration_date"):
        data["expiration_date"] = to_utc(data["expiration_date"])
    opening = data.pop("quantity_in_stock") or 0
    ing = Ingredient(**data, quantity_in_stock=0)
    db.add(ing)
    db.flush()
    if opening:
        stock.add_ingredient_stock(db, ing, opening, sub, "Stock initial")
    db.commit()
    db.refresh(ing)
    return ing


@router.patch("/ingredients/{ingredient_id}", response_model=IngredientOut)
def update_ingredient(ingredient_id: int, body: IngredientPatch, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    ing = _get_or_404(db, ingredient_id)
    for k, v in body.model_dump(exclude_unset=True).items():
        if k == "expiration_date" and v is not None:
            v = to_utc(v)
        if v is not None or k in ("description", "expiration_date", "purchase_price"):
            setattr(ing, k, v)
    db.commit()
    db.refresh(ing)
    return ing


@router.delete("/ingredients/{ingredient_id}")
def delete_ingredient(ingredient_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    # movements keep pointing at the row, so it is only hidden
    ing = _get_or_404(db, ingredient_id)
    ing.deleted_at = datetime.now(timezone.utc)
    db.commit()
    return {"message": "Ingredient deleted successfully"}


@router.post("/ingredients/{ingredient_id}/add-stock", response_model=StockMovementOut)
def add_stock(ingredient_id: int, body: IngredientStockOp, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    m = stock.add_ingredient_stock(db, _get_or_404(db, ingredient_id), body.quantity, sub, body.reason)
    db.commit()
    db.refresh(m)
    return m


@router.post("/ingredients/{ingredient_id}/remove-stock", response_model=StockMovementOut)
def remove_stock(ingredient_id: int, body: IngredientStockOp, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    m = stock.remove_ingredient_stock(
        db, _get_or_404(db, ingredient_id), body.quantity, sub, body.reason,
        transaction_id=body.transaction_id, recipe_id=body.recipe_id,
    )
    db.commit()
    db.refresh(m)
    return m


@router.post("/ingredients/{ingredient_id}/adjust-stock", response_model=StockMovementOut)
def adjust_stock(ingredient_id: int, body: IngredientAdjust, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    m = stock.adjust_ingredient_stock(db, _get_or_404(db, ingredient_id), body.new_quantity, sub, body.reason)
    db.commit()
    db.refresh(m)
    return m


@router.get("/ingredient-movements", response_model=List[StockMovementOut])
def list_movements(
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    sub: int = Depends(require_admin),
):
    q = (
        db.query(StockMovement)
        .filter(StockMovement.ingredient_id.isnot(None))
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
    )
    if limit:
        q = q.offset(offset).limit(limit)
    return q.all()


@router.get("/ingredient-movements/{ingredient_id}", response_model=List[StockMovementOut])
def ingredient_movements(ingredient_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return (
        db.query(StockMovement)
        .filter(StockMovement.ingredient_id == ingredient_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .all()
    )
