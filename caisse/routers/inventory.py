from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List

from caisse.db import get_db
from caisse.deps import require_admin
from caisse.models.core import Inventory, Product, StockMovement
from caisse.schemas.inventory import (
    InventoryIn, InventoryPatch, InventoryOut, StockOp, StockAdjust, StockMovementOut,
)
from caisse.services import inventory as stock
from caisse.util.dates import to_utc

router = APIRouter(prefix="/api", tags=["inventory"])


def _out(db: Session, inv: Inventory) -> InventoryOut:
    out = InventoryOut.model_validate(inv)
    p = db.get(Product, inv.product_id)
    out.product_name = p.name if p else None
    out.status = stock.stock_status(inv.quantity, inv.min_threshold)
    return out


def _get_or_404(db: Session, inventory_id: int) -> Inventory:
    inv = db.get(Inventory, inventory_id)
    if not inv:
        raise HTTPException(404, detail="Inventory item not found")
    return inv


@router.get("/inventory", response_model=List[InventoryOut])
def list_inventory(db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return [_out(db, inv) for inv in db.query(Inventory).order_by(Inventory.id.asc()).all()]


@router.get("/inventory/low-stock", response_model=List[InventoryOut])
def low_stock(db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return [_out(db, inv) for inv in stock.low_stock_inventory(db)]


@router.get("/inventory/expiring", response_model=List[InventoryOut])
def expiring(days: int = Query(7, ge=0), db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return [_out(db, inv) for inv in stock.expiring_inventory(db, days)]


@router.get("/inventory/{inventory_id}", response_model=InventoryOut)
def get_inventory(inventory_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return _out(db, _get_or_404(db, inventory_id))


@router.post("/inventory", response_model=InventoryOut, status_code=201)
def create_inventory(body: InventoryIn, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    if not db.get(Product, body.product_id):
        raise HTTPException(404, detail="Product not found")
    if db.query(Inventory).filter(Inventory.product_id == body.product_id).first():
        raise HTTPException(409, detail="Inventory already exists for this product")
    data = body.model_dump()
    if data.get("expiration_date"):
        data["expiration_date"] = to_utc(data["expiration_date"])
    opening = data.pop("quantity") or 0
    inv = Inventory(**data, quantity=0)
    db.add(inv)
    db.flush()
    if opening:
        stock.add_stock(db, inv.product_id, opening, sub, "Stock initial")
    db.commit()
    db.refresh(inv)
    return _out(db, inv)


@router.patch("/inventory/{inventory_id}", response_model=InventoryOut)
def update_inventory(inventory_id: int, body: InventoryPatch, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    inv = _get_or_404(db, inventory_id)
    for k, v in body.model_dump(exclude_unset=True).items():
        if k == "expiration_date" and v is not None:
            v = to_utc(v)
        if v is not None or k in ("purchase_price", "expiration_date"):
            setattr(inv, k, v)
    db.commit()
    db.refresh(inv)
    return _out(db, inv)


# ── Stock ledger ────────────────────────────────────────────────────────────

@router.get("/stock-movements", response_model=List[StockMovementOut])
def list_movements(
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    sub: int = Depends(require_admin),
):
    q = (
        db.query(StockMovement)
        .filter(StockMovement.inventory_id.isnot(None))
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
    )
    if limit:
        q = q.offset(offset).limit(limit)
    return q.all()


@router.get("/stock-movements/product/{product_id}", response_model=List[StockMovementOut])
def product_movements(product_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return (
        db.query(StockMovement)
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .all()
    )


@router.post("/stock/add", response_model=StockMovementOut)
def add_stock(body: StockOp, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    m = stock.add_stock(db, body.product_id, body.quantity, sub, body.reason)
    db.commit()
    db.refresh(m)
    return m


@router.post("/stock/remove", response_model=StockMovementOut)
def remove_stock(body: StockOp, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    m = stock.remove_stock(db, body.product_id, body.quantity, sub, body.reason)
    db.commit()
    db.refresh(m)
    return m


@router.post("/stock/adjust", response_model=StockMovementOut)
def adjust_stock(body: StockAdjust, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    m = stock.adjust_stock(db, body.product_id, body.new_quantity, sub, body.reason)
    db.commit()
    db.refresh(m)
    return m
