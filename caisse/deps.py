from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from sqlalchemy.orm import Session
from caisse.db import get_db
from caisse.models.core import User, UserRoleCode
from caisse.util.security import decode_token

auth_scheme = HTTPBearer(auto_error=False)

ADMINS = (UserRoleCode.ADMIN, UserRoleCode.SUPER_ADMIN)

def require_auth(creds: HTTPAuthorizationCredentials | None = Depends(auth_scheme)) -> int:
    if not creds:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        data = decode_token(creds.credentials)
        return int(data["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

def current_user(sub: int = Depends(require_auth), db: Session = Depends(get_db)) -> User:
    user = db.get(User, sub)
    if not user or not user.active or user.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown or disabled user")
    return user

def require_role(*roles: UserRoleCode):
    """Dependency that lets through users holding one of ``roles``.

    The role is read from the database, not from the token, so a demoted
    user loses access before the token expires.
    """
    def _dep(user: User = Depends(current_user)) -> int:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user.id
    return _dep

def require_user(user: User = Depends(current_user)) -> int:
    return user.id

require_admin = require_role(*ADMINS)
require_super_admin = require_role(UserRoleCode.SUPER_ADMIN)
