from sqlalchemy import (
    String, ForeignKey, Boolean, Numeric, Enum, Text, DateTime, Date, Integer, JSON, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column
from enum import Enum as PyEnum
from datetime import datetime, date as day_type
from caisse.db import Base
from caisse.models.common import IdMixin, TSMMixin, utcnow

def _enum(cls):
    # persist the wire value ("entry", "cash", ...) rather than the member name
    return Enum(cls, values_callable=lambda e: [m.value for m in e], native_enum=False, length=20)

# ── Enums ───────────────────────────────────────────────────────────────────
class UserRoleCode(PyEnum):
    ADMIN = "admin"
    CASHIER = "cashier"
    SUPER_ADMIN = "super_admin"

class TransactionType(PyEnum):
    ENTRY = "entry"
    SUBSCRIPTION = "subscription"
    CAFE = "cafe"
    ROOM_RENTAL = "room_rental"

class PaymentMethod(PyEnum):
    CASH = "cash"
    CARD = "card"
    MOBILE_TRANSFER = "mobile_transfer"

class ExpenseCategory(PyEnum):
    RENT = "rent"
    WIFI = "wifi"
    ELECTRICITY = "electricity"
    WATER = "water"
    SUPPLIES = "supplies"
    MAINTENANCE = "maintenance"
    OTHER = "other"

class StockActionType(PyEnum):
    ADD = "add"
    REMOVE = "remove"
    ADJUST = "adjust"

class RoomType(PyEnum):
    GRANDE = "grande"
    MOYENNE = "moyenne"
    PETITE = "petite"
    SALLE_REUNION = "salle_reunion"

# ── Identity ────────────────────────────────────────────────────────────────
class User(Base, IdMixin, TSMMixin):
    __tablename__ = "user"
    username: Mapped[str] = mapped_column(String(80), unique=True)
    pass_hash: Mapped[str] = mapped_column(String(200))
    role: Mapped[UserRoleCode] = mapped_column(_enum(UserRoleCode), default=UserRoleCode.CASHIER)
    full_name: Mapped[str | None] = mapped_column(String(160))
    email: Mapped[str | None] = mapped_column(String(160))
    active: Mapped[bool] = mapped_column(Boolean, default=True)

class AuditLog(Base, IdMixin, TSMMixin):
    __tablename__ = "audit_log"
    actor_user_id: Mapped[int] = mapped_column(Integer)
    entity: Mapped[str] = mapped_column(String(60))
    entity_id: Mapped[int] = mapped_column(Integer)
    action: Mapped[str] = mapped_column(String(60))
    before: Mapped[str | None] = mapped_column(Text)
    after: Mapped[str | None] = mapped_column(Text)

# ── Catalogue ───────────────────────────────────────────────────────────────
class Product(Base, IdMixin, TSMMixin):
    __tablename__ = "product"
    name: Mapped[str] = mapped_column(String(160))
    price: Mapped[float] = mapped_column(Numeric(10, 2))  # DH
    category: Mapped[str] = mapped_column(String(40))     # beverage, food, other, ...
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

# ── Sales ───────────────────────────────────────────────────────────────────
class Transaction(Base, IdMixin, TSMMixin):
    __tablename__ = "cash_transaction"
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    type: Mapped[TransactionType] = mapped_column(_enum(TransactionType), index=True)
    amount: Mapped[float] = mapped_column(Numeric(10, 2))
    payment_method: Mapped[PaymentMethod] = mapped_column(_enum(PaymentMethod))
    client_name: Mapped[str | None] = mapped_column(String(160))
    client_email: Mapped[str | None] = mapped_column(String(160))
    notes: Mapped[str | None] = mapped_column(Text)
    # [{"productId", "name", "price", "quantity"}] for cafe orders
    items: Mapped[list | None] = mapped_column(JSON)
    subscription_end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_by_user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("user.id"))

class RoomRental(Base, IdMixin, TSMMixin):
    __tablename__ = "room_rental"
    room_type: Mapped[RoomType] = mapped_column(_enum(RoomType))
    price: Mapped[float] = mapped_column(Numeric(10, 2))
    client_name: Mapped[str] = mapped_column(String(160))
    client_contact: Mapped[str | None] = mapped_column(String(160))
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text)
    payment_method: Mapped[PaymentMethod] = mapped_column(_enum(PaymentMethod))
    transaction_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("cash_transaction.id"))
    created_by_user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("user.id"))

# ── Expenses ────────────────────────────────────────────────────────────────
class Expense(Base, IdMixin, TSMMixin):
    __tablename__ = "expense"
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    amount: Mapped[float] = mapped_column(Numeric(10, 2))
    category: Mapped[ExpenseCategory] = mapped_column(_enum(ExpenseCategory))
    description: Mapped[str | None] = mapped_column(Text)
    payment_method: Mapped[PaymentMethod] = mapped_column(_enum(PaymentMethod))
    created_by_user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("user.id"))

# ── Inventory ───────────────────────────────────────────────────────────────
class Inventory(Base, IdMixin, TSMMixin):
    __tablename__ = "inventory"
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("product.id"), unique=True)
    quantity: Mapped[float] = mapped_column(Numeric(12, 3), default=0)
    min_threshold: Mapped[float] = mapped_column(Numeric(12, 3), default=5)
    purchase_price: Mapped[float | None] = mapped_column(Numeric(10, 2))
    expiration_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_restock_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

class Ingredient(Base, IdMixin, TSMMixin):
    __tablename__ = "ingredient"
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str | None] = mapped_column(Text)
    unit: Mapped[str] = mapped_column(String(20))  # g, ml, pcs, ...
    purchase_price: Mapped[float | None] = mapped_column(Numeric(10, 2))
    quantity_in_stock: Mapped[float] = mapped_column(Numeric(12, 3), default=0)
    min_threshold: Mapped[float] = mapped_column(Numeric(12, 3), default=5)
    expiration_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_restock_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

class Recipe(Base, IdMixin, TSMMixin):
    __tablename__ = "recipe"
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("product.id"), unique=True)
    name: Mapped[str] = mapped_column(String(160))
    description: Mapped[str | None] = mapped_column(Text)

class RecipeIngredient(Base, TSMMixin):
    __tablename__ = "recipe_ingredient"
    recipe_id: Mapped[int] = mapped_column(Integer, ForeignKey("recipe.id"), primary_key=True)
    ingredient_id: Mapped[int] = mapped_column(Integer, ForeignKey("ingredient.id"), primary_key=True)
    quantity: Mapped[float] = mapped_column(Numeric(12, 3))  # per unit sold

class StockMovement(Base, IdMixin, TSMMixin):
    """Append-only ledger for both product inventory and ingredient stock.

    Exactly one of ``inventory_id`` / ``ingredient_id`` is set.
    """
    __tablename__ = "stock_movement"
    inventory_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("inventory.id"))
    product_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("product.id"))
    ingredient_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("ingredient.id"))
    quantity: Mapped[float] = mapped_column(Numeric(12, 3))  # signed delta
    resulting_quantity: Mapped[float] = mapped_column(Numeric(12, 3))
    action_type: Mapped[StockActionType] = mapped_column(_enum(StockActionType), default=StockActionType.ADD)
    reason: Mapped[str | None] = mapped_column(Text)
    transaction_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("cash_transaction.id"))
    recipe_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("recipe.id"))
    performed_by_user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("user.id"))

# ── Report snapshot ─────────────────────────────────────────────────────────
class DailyStats(Base, IdMixin, TSMMixin):
    __tablename__ = "daily_stats"
    date: Mapped[day_type] = mapped_column(Date)
    total_revenue: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    entries_revenue: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    entries_count: Mapped[int] = mapped_column(Integer, default=0)
    subscriptions_revenue: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    subscriptions_count: Mapped[int] = mapped_column(Integer, default=0)
    cafe_revenue: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    cafe_orders_count: Mapped[int] = mapped_column(Integer, default=0)
    room_rentals_revenue: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    room_rentals_count: Mapped[int] = mapped_column(Integer, default=0)
    __table_args__ = (
        UniqueConstraint("date", name="uq_daily_stats_date"),
    )
