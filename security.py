import os
from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

from database import get_db, serialize_doc, to_object_id, utcnow
from errors import AuthError, ForbiddenError

SECRET_KEY = os.getenv("JWT_SECRET", "dev_secret")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_DAYS = 7
ADMIN_ONLY_MESSAGE = "غير مصرح للمستخدم العادي"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(user: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    expire = utcnow() + (expires_delta or timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = {"sub": str(user["_id"]), "role": user.get("role", "user"), "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_user_by_email(db: Database, email: str):
    return db["user"].find_one({"email": str(email).strip().lower()})


def get_user(db: Database, user_id):
    oid = to_object_id(user_id)
    if oid is None:
        return None
    return db["user"].find_one({"_id": oid})


def to_safe_json(user: Dict[str, Any]) -> Dict[str, Any]:
    """API view of a user record. The password hash never leaves the service."""
    return serialize_doc({k: v for k, v in user.items() if k != "password_hash"})


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    if credentials is None:
        raise AuthError()
    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise AuthError()
    user = get_user(db, payload.get("sub"))
    if user is None:
        raise AuthError()
    return user


def get_current_admin(current: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if current.get("role") != "admin":
        raise ForbiddenError(ADMIN_ONLY_MESSAGE)
    return current


def owns_pharmacy(user: Dict[str, Any], pharmacy: Optional[Dict[str, Any]]) -> bool:
    return (
        pharmacy is not None
        and user.get("role") == "admin"
        and pharmacy.get("admin") == user["_id"]
    )


def find_owned_pharmacy(db: Database, pharmacy_id, user: Dict[str, Any]):
    """Fetch a pharmacy only if ``user`` administers it. Non-owners get None, same as a missing id."""
    oid = to_object_id(pharmacy_id)
    if oid is None:
        return None
    pharmacy = db["pharmacy"].find_one({"_id": oid, "admin": user["_id"]})
    return pharmacy if owns_pharmacy(user, pharmacy) else None


def get_admin_pharmacy(db: Database, admin_id):
    return db["pharmacy"].find_one({"admin": admin_id})
