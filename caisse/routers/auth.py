from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from caisse.schemas.common import CamelModel, Token
from caisse.schemas.users import UserOut
from caisse.util.security import create_token, verify_pw
from caisse.models.core import User
from caisse.db import get_db
from caisse.deps import current_user

router = APIRouter(prefix="/api", tags=["auth"])

class LoginIn(CamelModel):
    username: str
    password: str

@router.post("/login", response_model=Token)
def login(body: LoginIn, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.username == body.username, User.deleted_at.is_(None)).first()
    if not user or not user.active or not verify_pw(user.pass_hash, body.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return Token(access_token=create_token(user.id, user.role.value), role=user.role.value)

@router.post("/logout")
def logout(user: User = Depends(current_user)):
    # tokens are stateless; the client drops its copy
    return {"message": "Logged out"}

@router.get("/user", response_model=UserOut)
def me(user: User = Depends(current_user)):
    return user
