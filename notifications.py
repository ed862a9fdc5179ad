import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo import ReturnDocument
from pymongo.database import Database

from database import NEWEST_FIRST, create_document, get_db, serialize_doc, to_object_id
from errors import NotFoundError, handle_errors
from schemas import Notification
from security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def notify(db: Database, recipient_id: ObjectId, type: str, title: str, message: str,
           order_id: Optional[ObjectId] = None) -> ObjectId:
    notification = Notification(recipient=recipient_id, type=type, order=order_id, title=title, message=message)
    notification_id = create_document(db, "notification", notification)
    logger.info("Notification %s (%s) for user %s", notification_id, type, recipient_id)
    return notification_id


def list_notifications(db: Database, recipient_id: ObjectId) -> List[Dict[str, Any]]:
    notifications = list(db["notification"].find({"recipient": recipient_id}).sort(NEWEST_FIRST))
    for n in notifications:
        if n.get("order") is not None:
            n["order"] = db["order"].find_one({"_id": n["order"]}) or n["order"]
    return notifications


def mark_read(db: Database, notification_id, recipient_id: ObjectId) -> Dict[str, Any]:
    oid = to_object_id(notification_id)
    notification = None
    if oid is not None:
        notification = db["notification"].find_one_and_update(
            {"_id": oid, "recipient": recipient_id},
            {"$set": {"read": True}},
            return_document=ReturnDocument.AFTER,
        )
    if notification is None:
        raise NotFoundError("لم يتم العثور على الإشعار")
    return notification


@router.get("")
@handle_errors("حدث خطأ أثناء جلب الإشعارات")
def get_notifications(current=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"notifications": serialize_doc(list_notifications(db, current["_id"]))}


@router.patch("/{notification_id}/read")
@handle_errors("حدث خطأ أثناء تحديث الإشعار")
def mark_notification_read(notification_id: str, current=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"notification": serialize_doc(mark_read(db, notification_id, current["_id"]))}
