import logging
from datetime import datetime, timezone, timedelta
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.orm import Session

from caisse.errors import ValidationFailed
from caisse.models.core import (
    Ingredient, Inventory, Product, Recipe, RecipeIngredient, StockMovement, StockActionType, Transaction,
)
from caisse.services.pricing import _q3

log = logging.getLogger(__name__)

LOW_STOCK = "low_stock"
OUT_OF_STOCK = "out_of_stock"


def stock_status(quantity, min_threshold) -> str | None:
    q = Decimal(str(quantity or 0))
    if q <= 0:
        return OUT_OF_STOCK
    if q <= Decimal(str(min_threshold or 0)):
        return LOW_STOCK
    return None


def _warning(kind: str, obj_id: int, name: str, quantity, min_threshold, status: str) -> dict:
    return {
        "kind": kind,
        "id": obj_id,
        "name": name,
        "quantity": float(quantity),
        "minThreshold": float(min_threshold or 0),
        "status": status,
    }


# ── Ingredient stock ────────────────────────────────────────────────────────

def _move_ingredient(db: Session, ing: Ingredient, delta: Decimal, action: StockActionType, user_id: int | None,
                     reason: str | None = None, transaction_id: int | None = None,
                     recipe_id: int | None = None) -> StockMovement:
    new_qty = _q3(ing.quantity_in_stock or 0) + delta
    ing.quantity_in_stock = new_qty
    m = StockMovement(
        ingredient_id=ing.id,
        quantity=delta,
        resulting_quantity=new_qty,
        action_type=action,
        reason=reason,
        transaction_id=transaction_id,
        recipe_id=recipe_id,
        performed_by_user_id=user_id,
    )
    db.add(m)
    return m


def add_ingredient_stock(db: Session, ing: Ingredient, quantity: float, user_id: int | None, reason: str | None = None):
    if quantity is None or quantity <= 0:
        raise ValidationFailed("quantity must be positive", field="quantity")
    ing.last_restock_date = datetime.now(timezone.utc)
    return _move_ingredient(db, ing, _q3(quantity), StockActionType.ADD, user_id, reason or "Réapprovisionnement")


def remove_ingredient_stock(db: Session, ing: Ingredient, quantity: float, user_id: int | None, reason: str | None = None,
                            transaction_id: int | None = None, recipe_id: int | None = None):
    if quantity is None or quantity <= 0:
        raise ValidationFailed("quantity must be positive", field="quantity")
    return _move_ingredient(db, ing, -_q3(quantity), StockActionType.REMOVE, user_id, reason,
                            transaction_id=transaction_id, recipe_id=recipe_id)


def adjust_ingredient_stock(db: Session, ing: Ingredient, new_quantity: float, user_id: int | None, reason: str | None = None):
    if new_quantity is None or new_quantity < 0:
        raise ValidationFailed("newQuantity must not be negative", field="newQuantity")
    delta = _q3(new_quantity) - _q3(ing.quantity_in_stock or 0)
    return _move_ingredient(db, ing, delta, StockActionType.ADJUST, user_id, reason or "Ajustement d'inventaire")


# ── Product inventory ───────────────────────────────────────────────────────

def _move_inventory(db: Session, inv: Inventory, delta: Decimal, action: StockActionType, user_id: int | None,
                    reason: str | None = None, transaction_id: int | None = None) -> StockMovement:
    new_qty = _q3(inv.quantity or 0) + delta
    inv.quantity = new_qty
    m = StockMovement(
        inventory_id=inv.id,
        product_id=inv.product_id,
        quantity=delta,
        resulting_quantity=new_qty,
        action_type=action,
        reason=reason,
        transaction_id=transaction_id,
        performed_by_user_id=user_id,
    )
    db.add(m)
    return m


def inventory_for_product(db: Session, product_id: int) -> Inventory:
    inv = db.query(Inventory).filter(Inventory.product_id == product_id).first()
    if not inv:
        raise ValidationFailed(f"no inventory for product {product_id}", field="productId")
    return inv


def add_stock(db: Session, product_id: int, quantity: float, user_id: int | None, reason: str | None = None):
    if quantity is None or quantity <= 0:
        raise ValidationFailed("quantity must be positive", field="quantity")
    inv = inventory_for_product(db, product_id)
    inv.last_restock_date = datetime.now(timezone.utc)
    return _move_inventory(db, inv, _q3(quantity), StockActionType.ADD, user_id, reason or "Réapprovisionnement")


def remove_stock(db: Session, product_id: int, quantity: float, user_id: int | None, reason: str | None = None,
                 transaction_id: int | None = None):
    if quantity is None or quantity <= 0:
        raise ValidationFailed("quantity must be positive", field="quantity")
    inv = inventory_for_product(db, product_id)
    return _move_inventory(db, inv, -_q3(quantity), StockActionType.REMOVE, user_id, reason, transaction_id)


def adjust_stock(db: Session, product_id: int, new_quantity: float, user_id: int | None, reason: str | None = None):
    if new_quantity is None or new_quantity < 0:
        raise ValidationFailed("newQuantity must not be negative", field="newQuantity")
    inv = inventory_for_product(db, product_id)
    delta = _q3(new_quantity) - _q3(inv.quantity or 0)
    return _move_inventory(db, inv, delta, StockActionType.ADJUST, user_id, reason or "Ajustement d'inventaire")


# ── Recipes ─────────────────────────────────────────────────────────────────

def use_recipe(db: Session, recipe: Recipe, user_id: int | None, transaction_id: int | None,
               sold_qty=1) -> tuple[list[StockMovement], list[dict]]:
    """Consume ``sold_qty`` units of ``recipe`` from ingredient stock.

    Stock may go negative; every ingredient left at or under its threshold
    is reported back as a warning.
    """
    movements, warnings = [], []
    lines = db.query(RecipeIngredient).filter(RecipeIngredient.recipe_id == recipe.id).all()
    for line in lines:
        ing = db.get(Ingredient, line.ingredient_id)
        if not ing:
            continue
        used = (_q3(line.quantity) * _q3(sold_qty)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
        if used <= 0:
            continue
        m = _move_ingredient(
            db, ing, -used, StockActionType.REMOVE, user_id,
            reason=f"Vente - Transaction #{transaction_id}" if transaction_id else f"Recette {recipe.name}",
            transaction_id=transaction_id, recipe_id=recipe.id,
        )
        movements.append(m)
        status = stock_status(ing.quantity_in_stock, ing.min_threshold)
        if status:
            warnings.append(_warning("ingredient", ing.id, ing.name, ing.quantity_in_stock, ing.min_threshold, status))
    return movements, warnings


def consume_for_transaction(db: Session, tx: Transaction, user_id: int | None) -> tuple[list[StockMovement], list[dict]]:
    """Decrement stock for every line of a cafe order.

    Products with a recipe consume ingredients; products without one consume
    their own inventory row when they have one. Products with neither are
    not stock-tracked.
    """
    movements, warnings = [], []
    for item in tx.items or []:
        product_id = item.get("productId")
        qty = item.get("quantity") or 0
        recipe = db.query(Recipe).filter(Recipe.product_id == product_id).first()
        if recipe:
            mv, wr = use_recipe(db, recipe, user_id, tx.id, sold_qty=qty)
            movements += mv
            warnings += wr
            continue
        inv = db.query(Inventory).filter(Inventory.product_id == product_id).first()
        if not inv:
            continue
        m = _move_inventory(db, inv, -_q3(qty), StockActionType.REMOVE, user_id,
                            reason=f"Vente - Transaction #{tx.id}", transaction_id=tx.id)
        movements.append(m)
        status = stock_status(inv.quantity, inv.min_threshold)
        if status:
            product = db.get(Product, product_id)
            warnings.append(_warning("product", product_id, product.name if product else item.get("name", ""),
                                     inv.quantity, inv.min_threshold, status))
    for w in warnings:
        log.warning("stock %s for %s #%s (%s): %s left", w["status"], w["kind"], w["id"], w["name"], w["quantity"])
    return movements, warnings


# ── Read helpers ────────────────────────────────────────────────────────────

def low_stock_ingredients(db: Session, threshold: float | None = None) -> list[Ingredient]:
    out = []
    for ing in db.query(Ingredient).filter(Ingredient.deleted_at.is_(None)).order_by(Ingredient.name.asc()).all():
        limit = threshold if threshold is not None else ing.min_threshold
        if Decimal(str(ing.quantity_in_stock or 0)) <= Decimal(str(limit or 0)):
            out.append(ing)
    return out


def low_stock_inventory(db: Session) -> list[Inventory]:
    return [inv for inv in db.query(Inventory).all()
            if Decimal(str(inv.quantity or 0)) <= Decimal(str(inv.min_threshold or 0))]


def expiring_inventory(db: Session, days: int = 7) -> list[Inventory]:
    limit = datetime.now(timezone.utc) + timedelta(days=days)
    return (
        db.query(Inventory)
        .filter(Inventory.expiration_date.isnot(None), Inventory.expiration_date <= limit)
        .order_by(Inventory.expiration_date.asc())
        .all()
    )
