from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from caisse.db import get_db
from caisse.config import settings
from caisse.util.security import hash_pw
from caisse.models.core import User, UserRoleCode

router = APIRouter(prefix="/api/admin", tags=["admin"])

DEV_USERS = [
    ("superadmin", "admin", UserRoleCode.SUPER_ADMIN, "Super Admin"),
    ("admin", "admin", UserRoleCode.ADMIN, "Admin"),
    ("cashier", "cashier", UserRoleCode.CASHIER, "Caissier"),
]

@router.post("/dev-bootstrap")
def dev_bootstrap(db: Session = Depends(get_db)):
    if settings.APP_ENV != "dev":
        raise HTTPException(403, detail="Not allowed")

    out = []
    for username, password, role, full_name in DEV_USERS:
        u = db.query(User).filter(User.username == username).first()
        if not u:
            u = User(
                username=username,
                pass_hash=hash_pw(password),
                role=role,
                full_name=full_name,
                active=True,
            )
            db.add(u); db.flush()
        out.append({"id": u.id, "username": username, "password": password, "role": role.value})

    db.commit()
    return {"ok": True, "users": out}
