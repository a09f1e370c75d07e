from pydantic import AliasChoices, Field
from typing import Optional, Literal, List
from datetime import datetime

from caisse.models.core import TransactionType, PaymentMethod
from caisse.schemas.common import CamelModel, OutModel

TransactionTypeLiteral = Literal["entry", "subscription", "cafe", "room_rental"]
PaymentMethodLiteral = Literal["cash", "card", "mobile_transfer"]

class TransactionItem(CamelModel):
    product_id: int = Field(validation_alias=AliasChoices("productId", "product_id", "id"), serialization_alias="productId")
    name: Optional[str] = None
    price: Optional[float] = None
    quantity: int = 1

class TransactionIn(CamelModel):
    type: TransactionTypeLiteral
    payment_method: PaymentMethodLiteral
    date: Optional[datetime] = None
    amount: Optional[float] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    notes: Optional[str] = None
    items: Optional[List[TransactionItem]] = None
    subscription_end_date: Optional[datetime] = None

class TransactionPatch(CamelModel):
    type: Optional[TransactionTypeLiteral] = None
    payment_method: Optional[PaymentMethodLiteral] = None
    date: Optional[datetime] = None
    amount: Optional[float] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    notes: Optional[str] = None
    items: Optional[List[TransactionItem]] = None
    subscription_end_date: Optional[datetime] = None

class TransactionOut(OutModel):
    id: int
    date: datetime
    type: TransactionType
    amount: float
    payment_method: PaymentMethod
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    notes: Optional[str] = None
    items: Optional[List[dict]] = None
    subscription_end_date: Optional[datetime] = None
    created_by_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("created_by_user_id", "createdById", "created_by_id"))

class StockWarning(OutModel):
    kind: str
    id: int
    name: str
    quantity: float
    min_threshold: float
    status: str

class TransactionCreated(TransactionOut):
    stock_warnings: List[StockWarning] = []
