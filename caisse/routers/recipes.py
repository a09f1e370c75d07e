from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from caisse.db import get_db
from caisse.deps import require_admin, require_user
from caisse.models.core import Ingredient, Product, Recipe, RecipeIngredient, StockMovement, Transaction
from caisse.schemas.inventory import RecipeIn, RecipePatch, RecipeOut, RecipeLineOut, RecipeUse, StockMovementOut
from caisse.schemas.transactions import StockWarning
from caisse.services.inventory import use_recipe

router = APIRouter(prefix="/api/recipes", tags=["recipes"])


def _get_or_404(db: Session, recipe_id: int) -> Recipe:
    r = db.get(Recipe, recipe_id)
    if not r:
        raise HTTPException(404, detail="Recipe not found")
    return r


def _out(db: Session, r: Recipe) -> RecipeOut:
    rows = (
        db.query(RecipeIngredient, Ingredient)
        .join(Ingredient, Ingredient.id == RecipeIngredient.ingredient_id)
        .filter(RecipeIngredient.recipe_id == r.id)
        .order_by(Ingredient.name.asc())
        .all()
    )
    out = RecipeOut.model_validate(r)
    out.ingredients = [
        RecipeLineOut(ingredient_id=ing.id, name=ing.name, unit=ing.unit, quantity=line.quantity)
        for line, ing in rows
    ]
    return out


def _check_product(db: Session, product_id: int, recipe_id: int | None = None):
    if not db.get(Product, product_id):
        raise HTTPException(404, detail="Product not found")
    other = db.query(Recipe).filter(Recipe.product_id == product_id).first()
    if other and other.id != recipe_id:
        raise HTTPException(409, detail="This product already has a recipe")


def _set_lines(db: Session, recipe_id: int, lines):
    ids = [l.ingredient_id for l in lines]
    if len(set(ids)) != len(ids):
        raise HTTPException(400, detail="Duplicate ingredient in recipe")
    for iid in ids:
        ing = db.get(Ingredient, iid)
        if not ing or ing.deleted_at is not None:
            raise HTTPException(404, detail=f"Ingredient {iid} not found")
    db.query(RecipeIngredient).filter(RecipeIngredient.recipe_id == recipe_id).delete()
    for l in lines:
        db.add(RecipeIngredient(recipe_id=recipe_id, ingredient_id=l.ingredient_id, quantity=l.quantity))


@router.get("", response_model=List[RecipeOut])
def list_recipes(db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return [_out(db, r) for r in db.query(Recipe).order_by(Recipe.name.asc()).all()]


@router.get("/by-product/{product_id}", response_model=RecipeOut)
def by_product(product_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    r = db.query(Recipe).filter(Recipe.product_id == product_id).first()
    if not r:
        raise HTTPException(404, detail="Recipe not found")
    return _out(db, r)


@router.get("/{recipe_id}", response_model=RecipeOut)
def get_recipe(recipe_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return _out(db, _get_or_404(db, recipe_id))


@router.post("", response_model=RecipeOut, status_code=201)
def create_recipe(body: RecipeIn, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    _check_product(db, body.recipe.product_id)
    r = Recipe(**body.recipe.model_dump())
    db.add(r)
    db.flush()
    _set_lines(db, r.id, body.ingredients)
    db.commit()
    db.refresh(r)
    return _out(db, r)


@router.patch("/{recipe_id}", response_model=RecipeOut)
def update_recipe(recipe_id: int, body: RecipePatch, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    r = _get_or_404(db, recipe_id)
    header = body.recipe.model_dump(exclude_unset=True)
    if header.get("product_id") is not None:
        _check_product(db, header["product_id"], recipe_id=r.id)
    for k, v in header.items():
        if v is not None or k == "description":
            setattr(r, k, v)
    if body.ingredients is not None:
        _set_lines(db, r.id, body.ingredients)
    db.commit()
    db.refresh(r)
    return _out(db, r)


@router.delete("/{recipe_id}")
def delete_recipe(recipe_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    r = _get_or_404(db, recipe_id)
    db.query(RecipeIngredient).filter(RecipeIngredient.recipe_id == r.id).delete()
    db.query(StockMovement).filter(StockMovement.recipe_id == r.id).update({StockMovement.recipe_id: None})
    db.delete(r)
    db.commit()
    return {"message": "Recipe deleted successfully"}


@router.post("/{recipe_id}/use")
def use(recipe_id: int, body: RecipeUse, db: Session = Depends(get_db), sub: int = Depends(require_user)):
    """Consume ingredients for ``quantity`` servings sold on an existing transaction."""
    r = _get_or_404(db, recipe_id)
    if not db.get(Transaction, body.transaction_id):
        raise HTTPException(404, detail="Transaction not found")
    movements, warnings = use_recipe(db, r, sub, body.transaction_id, sold_qty=body.quantity)
    db.commit()
    for m in movements:
        db.refresh(m)
    return {
        "movements": [StockMovementOut.model_validate(m).model_dump(by_alias=True, mode="json") for m in movements],
        "stockWarnings": [StockWarning.model_validate(w).model_dump(by_alias=True, mode="json") for w in warnings],
    }
