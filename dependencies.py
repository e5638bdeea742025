"""Access and moderation checks shared by the routers."""

from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dataBase import get_db
from services import user_directory
from services.exceptions import InvalidIdError
from utils import verify_token

bearer_scheme = HTTPBearer(auto_error=False)


async def _resolve_user(db, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[Dict[str, Any]]:
    if credentials is None:
        return None
    user_id = verify_token(credentials.credentials)
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        user = await user_directory.find_user(db, user_id)
    except InvalidIdError:
        user = None
    if not user:
        raise HTTPException(status_code=401, detail="User not found for token")
    if not user.get("isActive", True):
        raise HTTPException(status_code=403, detail="Account is deactivated")
    if user.get("isBlocked", False):
        raise HTTPException(status_code=403, detail="Account is blocked")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db=Depends(get_db),
) -> Dict[str, Any]:
    user = await _resolve_user(db, credentials)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db=Depends(get_db),
) -> Optional[Dict[str, Any]]:
    return await _resolve_user(db, credentials)


def is_admin(user: Dict[str, Any]) -> bool:
    return user.get("role") == "admin"


async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not is_admin(user):
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
