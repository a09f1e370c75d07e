# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    UserRoleCode, TransactionType, PaymentMethod, ExpenseCategory, StockActionType, RoomType,

    # Identity & audit
    User, AuditLog,

    # Catalogue & sales
    Product, Transaction, RoomRental, Expense,

    # Inventory
    Inventory, Ingredient, Recipe, RecipeIngredient, StockMovement,

    # Reports
    DailyStats,
)

__all__ = [
    "UserRoleCode", "TransactionType", "PaymentMethod", "ExpenseCategory", "StockActionType", "RoomType",
    "User", "AuditLog",
    "Product", "Transaction", "RoomRental", "Expense",
    "Inventory", "Ingredient", "Recipe", "RecipeIngredient", "StockMovement",
    "DailyStats",
]
