from typing import Optional, Literal
from pydantic import Field

from caisse.models.core import UserRoleCode
from caisse.schemas.common import CamelModel, OutModel

RoleLiteral = Literal["admin", "cashier", "super_admin"]

class UserIn(CamelModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=4)
    role: RoleLiteral = "cashier"
    full_name: Optional[str] = None
    email: Optional[str] = None

class UserPatch(CamelModel):
    password: Optional[str] = Field(default=None, min_length=4)
    role: Optional[RoleLiteral] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    active: Optional[bool] = None

class UserOut(OutModel):
    id: int
    username: str
    role: UserRoleCode
    full_name: Optional[str] = None
    email: Optional[str] = None
    active: bool
