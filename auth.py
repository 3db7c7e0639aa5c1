import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Header, HTTPException

from config import Settings, get_settings
from mongo import PortalDatabase, get_db

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"


def issue_access_token(email: str, settings: Settings) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    return jwt.encode({"email": email, "exp": expire}, settings.access_token_secret, algorithm=ALGORITHM)


def verify_jwt(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Decode the bearer token; 401 without a header, 403 for a bad token."""
    if not authorization:
        raise HTTPException(status_code=401, detail="UnAuthorized Access")
    parts = authorization.split(" ")
    token = parts[1] if len(parts) > 1 else ""
    try:
        return jwt.decode(token, settings.access_token_secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError as e:
        logging.warning(f"Rejected access token: {str(e)}")
        raise HTTPException(status_code=403, detail="Forbidden Access")


class RoleDirectory(ABC):
    @abstractmethod
    def role_of(self, email: str) -> Optional[str]:
        ...

    def is_admin(self, email: str) -> bool:
        return self.role_of(email) == ADMIN_ROLE


class UserRoleDirectory(RoleDirectory):
    """Reads roles from the ``role`` field of user documents."""

    def __init__(self, users_collection):
        self.users = users_collection

    def role_of(self, email: str) -> Optional[str]:
        user = self.users.find_one({"email": email})
        if user is None:
            return None
        return user.get("role")


def get_role_directory(db: PortalDatabase = Depends(get_db)) -> RoleDirectory:
    return UserRoleDirectory(db.users)


def require_admin(
    decoded: Dict[str, Any] = Depends(verify_jwt),
    roles: RoleDirectory = Depends(get_role_directory),
) -> Dict[str, Any]:
    requester = decoded.get("email")
    if not requester or not roles.is_admin(requester):
        raise HTTPException(status_code=403, detail="Forbidden access")
    return decoded
