from typing import Optional, List
from datetime import datetime
from pydantic import Field, AliasChoices

from caisse.models.core import StockActionType
from caisse.schemas.common import CamelModel, OutModel

# ── Product inventory ───────────────────────────────────────────────────────

class InventoryIn(CamelModel):
    product_id: int
    quantity: float = Field(default=0, ge=0)
    min_threshold: float = Field(default=5, ge=0)
    purchase_price: Optional[float] = Field(default=None, ge=0)
    expiration_date: Optional[datetime] = None

class InventoryPatch(CamelModel):
    # quantity is only changed through /stock/* so it is not accepted here
    min_threshold: Optional[float] = Field(default=None, ge=0)
    purchase_price: Optional[float] = Field(default=None, ge=0)
    expiration_date: Optional[datetime] = None

class InventoryOut(OutModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    quantity: float
    min_threshold: float
    purchase_price: Optional[float] = None
    expiration_date: Optional[datetime] = None
    last_restock_date: Optional[datetime] = None
    status: Optional[str] = None

class StockOp(CamelModel):
    product_id: int
    quantity: float
    reason: Optional[str] = None

class StockAdjust(CamelModel):
    product_id: int
    new_quantity: float
    reason: Optional[str] = None

class StockMovementOut(OutModel):
    id: int
    inventory_id: Optional[int] = None
    product_id: Optional[int] = None
    ingredient_id: Optional[int] = None
    quantity: float
    resulting_quantity: float
    action_type: StockActionType
    reason: Optional[str] = None
    transaction_id: Optional[int] = None
    recipe_id: Optional[int] = None
    performed_by_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("performed_by_user_id", "performedById", "performed_by_id"))
    timestamp: datetime = Field(validation_alias=AliasChoices("created_at", "timestamp"))

# ── Ingredients ─────────────────────────────────────────────────────────────

class IngredientIn(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    unit: str
    purchase_price: Optional[float] = Field(default=None, ge=0)
    quantity_in_stock: float = Field(default=0, ge=0)
    min_threshold: float = Field(default=5, ge=0)
    expiration_date: Optional[datetime] = None

class IngredientPatch(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    purchase_price: Optional[float] = Field(default=None, ge=0)
    min_threshold: Optional[float] = Field(default=None, ge=0)
    expiration_date: Optional[datetime] = None

class IngredientOut(OutModel):
    id: int
    name: str
    description: Optional[str] = None
    unit: str
    purchase_price: Optional[float] = None
    quantity_in_stock: float
    min_threshold: float
    expiration_date: Optional[datetime] = None
    last_restock_date: Optional[datetime] = None

class IngredientStockOp(CamelModel):
    quantity: float
    reason: Optional[str] = None
    transaction_id: Optional[int] = None
    recipe_id: Optional[int] = None

class IngredientAdjust(CamelModel):
    new_quantity: float
    reason: Optional[str] = None

# ── Recipes ─────────────────────────────────────────────────────────────────

class RecipeHeader(CamelModel):
    product_id: int
    name: str = Field(min_length=1)
    description: Optional[str] = None

class RecipeHeaderPatch(CamelModel):
    product_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None

class RecipeLineIn(CamelModel):
    ingredient_id: int
    quantity: float = Field(gt=0)

class RecipeIn(CamelModel):
    recipe: RecipeHeader
    ingredients: List[RecipeLineIn]

class RecipePatch(CamelModel):
    recipe: RecipeHeaderPatch
    ingredients: Optional[List[RecipeLineIn]] = None

class RecipeLineOut(OutModel):
    ingredient_id: int
    name: str
    unit: str
    quantity: float

class RecipeOut(OutModel):
    id: int
    product_id: int
    name: str
    description: Optional[str] = None
    ingredients: List[RecipeLineOut] = []

class RecipeUse(CamelModel):
    transaction_id: int
    quantity: int = Field(default=1, ge=1)
