from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime, timezone

from caisse.db import get_db
from caisse.deps import require_admin
from caisse.util.security import hash_pw
from caisse.models.core import User, UserRoleCode
from caisse.schemas.users import UserIn, UserPatch, UserOut

router = APIRouter(prefix="/api/users", tags=["users"])


def _get_or_404(db: Session, user_id: int) -> User:
    u = db.get(User, user_id)
    if not u or u.deleted_at is not None:
        raise HTTPException(404, detail="User not found")
    return u


def _guard_super_admin(db: Session, actor_id: int, role: UserRoleCode | None, target: User | None = None):
    # only a super_admin may grant or touch the super_admin role
    touches = role == UserRoleCode.SUPER_ADMIN or (target is not None and target.role == UserRoleCode.SUPER_ADMIN)
    if touches and db.get(User, actor_id).role != UserRoleCode.SUPER_ADMIN:
        raise HTTPException(403, detail="Forbidden")


@router.get("", response_model=List[UserOut])
def list_users(db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return db.query(User).filter(User.deleted_at.is_(None)).order_by(User.username.asc()).all()


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    return _get_or_404(db, user_id)


@router.post("", response_model=UserOut, status_code=201)
def create_user(body: UserIn, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    role = UserRoleCode(body.role)
    _guard_super_admin(db, sub, role)
    if db.query(User).filter(User.username == body.username).first():
        raise HTTPException(409, detail="Username already exists")
    u = User(
        username=body.username,
        pass_hash=hash_pw(body.password),
        role=role,
        full_name=body.full_name,
        email=body.email,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@router.patch("/{user_id}", response_model=UserOut)
def update_user(user_id: int, body: UserPatch, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    u = _get_or_404(db, user_id)
    changes = body.model_dump(exclude_unset=True)
    role = UserRoleCode(changes["role"]) if changes.get("role") else None
    _guard_super_admin(db, sub, role, u)
    if "password" in changes:
        pw = changes.pop("password")
        if pw:
            u.pass_hash = hash_pw(pw)
    if role:
        changes["role"] = role
    for k, v in changes.items():
        if v is not None or k in ("full_name", "email"):
            setattr(u, k, v)
    db.commit()
    db.refresh(u)
    return u


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), sub: int = Depends(require_admin)):
    """
    Soft-delete: transactions and movements keep pointing at the user row.
    """
    if user_id == sub:
        raise HTTPException(400, detail="You cannot delete your own account")
    u = _get_or_404(db, user_id)
    _guard_super_admin(db, sub, None, u)
    u.deleted_at = datetime.now(timezone.utc)
    u.active = False
    db.commit()
    return {"message": "User deleted successfully"}
