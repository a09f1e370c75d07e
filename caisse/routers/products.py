from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from caisse.db import get_db
from caisse.deps import require_admin, require_user
from caisse.models.core import Product
from caisse.schemas.catalog import ProductIn, ProductPatch, ProductOut

router = APIRouter(prefix="/api/products", tags=["products"])


def _get_or_404(db: Session, product_id: int) -> Product:
    p = db.get(Product, product_id)
    if not p or p.deleted_at is not None:
        raise HTTPException(404, detail="Product not found")
    return p


@router.get("", response_model=List[ProductOut])
def list_products(
    active_only: bool = False,
    category: str | None = None,
    db: Session = Depends(get_db),
    sub: int = Depends(require_user),
):
    """
    Catalogue for the cafe menu. ``active_only=true`` gives the sale menu;
    without it retired products are listed too so old orders still resolve.
    """
    q = db.query(Product).filter(Product.deleted_at.is_(None))
    if active_only:
        q = q.filter(Product.is_active.is_(True))
    if category:
        q = q.filter(Product.category == category)
    return q.order_by(Product.category.asc(), Product.name.asc()).all()


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db), sub: int = Depends(require_user)):
    return _get_or_404(db, product_id)


@router.post("", response_model=ProductOut, status_code=201)
def create_product(body: ProductIn, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    p = Product(**body.model_dump())
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(product_id: int, body: ProductPatch, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    p = _get_or_404(db, product_id)
    for k, v in body.model_dump(exclude_unset=True).items():
        if v is not None:
            setattr(p, k, v)
    db.commit()
    db.refresh(p)
    return p


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    # retire rather than drop: past cafe orders reference the product
    p = _get_or_404(db, product_id)
    p.is_active = False
    db.commit()
    return {"message": "Product deactivated"}
