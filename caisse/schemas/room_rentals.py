from typing import Optional, Literal
from datetime import datetime
from pydantic import Field

from caisse.models.core import PaymentMethod, RoomType
from caisse.schemas.common import CamelModel, OutModel
from caisse.schemas.transactions import PaymentMethodLiteral

RoomTypeLiteral = Literal["grande", "moyenne", "petite", "salle_reunion"]

class RoomRentalIn(CamelModel):
    room_type: RoomTypeLiteral
    price: float = Field(ge=0)
    client_name: str
    client_contact: Optional[str] = None
    date: datetime
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = None
    payment_method: PaymentMethodLiteral = "cash"

class RoomRentalPatch(CamelModel):
    room_type: Optional[RoomTypeLiteral] = None
    price: Optional[float] = Field(default=None, ge=0)
    client_name: Optional[str] = None
    client_contact: Optional[str] = None
    date: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    payment_method: Optional[PaymentMethodLiteral] = None

class RoomRentalOut(OutModel):
    id: int
    room_type: RoomType
    price: float
    client_name: str
    client_contact: Optional[str] = None
    date: datetime
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = None
    payment_method: PaymentMethod
    transaction_id: Optional[int] = None
