from typing import Optional, Literal
from datetime import datetime
from pydantic import Field, AliasChoices

from caisse.models.core import ExpenseCategory, PaymentMethod
from caisse.schemas.common import CamelModel, OutModel
from caisse.schemas.transactions import PaymentMethodLiteral

ExpenseCategoryLiteral = Literal["rent", "wifi", "electricity", "water", "supplies", "maintenance", "other"]

class ExpenseIn(CamelModel):
    date: Optional[datetime] = None
    amount: float = Field(ge=0)
    category: ExpenseCategoryLiteral
    description: Optional[str] = None
    payment_method: PaymentMethodLiteral

class ExpensePatch(CamelModel):
    date: Optional[datetime] = None
    amount: Optional[float] = Field(default=None, ge=0)
    category: Optional[ExpenseCategoryLiteral] = None
    description: Optional[str] = None
    payment_method: Optional[PaymentMethodLiteral] = None

class ExpenseOut(OutModel):
    id: int
    date: datetime
    amount: float
    category: ExpenseCategory
    description: Optional[str] = None
    payment_method: PaymentMethod
    created_by_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("created_by_user_id", "createdById", "created_by_id"))
