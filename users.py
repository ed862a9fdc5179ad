from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import EmailStr
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import get_db, to_object_id, utcnow
from errors import ConflictError, NotFoundError, handle_errors
from schemas import CamelModel
from security import get_current_user, to_safe_json

router = APIRouter(prefix="/api/users", tags=["users"])

USER_NOT_FOUND = "المستخدم غير موجود"


class UserUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None


def update_profile(db: Database, user_id, current: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    """Profile edit. Users can only edit themselves; anyone else's id reads as missing."""
    oid = to_object_id(user_id)
    if oid is None or oid != current["_id"]:
        raise NotFoundError(USER_NOT_FOUND)

    update = {k: v for k, v in changes.items() if v is not None}
    if "email" in update:
        update["email"] = str(update["email"]).lower()
    update["updated_at"] = utcnow()
    try:
        user = db["user"].find_one_and_update(
            {"_id": oid}, {"$set": update}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise ConflictError("البريد مستخدم مسبقاً")
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return user


@router.get("/me")
def me(current=Depends(get_current_user)):
    return {"user": to_safe_json(current)}


@router.put("/{user_id}")
@handle_errors("تعذر تحديث المستخدم")
def update_user(user_id: str, payload: UserUpdate, current=Depends(get_current_user), db: Database = Depends(get_db)):
    user = update_profile(db, user_id, current, payload.model_dump(exclude_unset=True))
    return {"user": to_safe_json(user)}
