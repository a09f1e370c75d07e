from typing import Optional
from pydantic import Field

from caisse.schemas.common import CamelModel, OutModel

class ProductIn(CamelModel):
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    category: str = "beverage"
    is_active: bool = True

class ProductPatch(CamelModel):
    name: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    is_active: Optional[bool] = None

class ProductOut(OutModel):
    id: int
    name: str
    price: float
    category: str
    is_active: bool
