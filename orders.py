"""
Order workflow.

An order starts ``pending``. The admin of the order's pharmacy may then set
any of the four statuses; there is no transition table. Each creation and
status change leaves a notification for the other party. Order and
notification are separate writes: a failed notification does not undo the
order.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field
from pymongo import ReturnDocument
from pymongo.database import Database

from database import NEWEST_FIRST, create_document, get_db, serialize_doc, to_object_id, utcnow
from errors import ForbiddenError, NotFoundError, ValidationError, handle_errors
from notifications import notify
from pharmacies import PHARMACY_NOT_FOUND, get_pharmacy
from schemas import ORDER_STATUSES, CamelModel, Order, OrderMedicine
from security import find_owned_pharmacy, get_admin_pharmacy, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])

ORDER_NOT_FOUND = "لم يتم العثور على الطلب"
USER_PROJECTION = {"name": 1, "email": 1, "phone": 1}
PHARMACY_PROJECTION = {"name": 1, "address": 1, "phone": 1}


class CreateOrderRequest(CamelModel):
    pharmacy_id: Optional[str] = None
    medicine_name: Optional[str] = None
    quantity: Optional[int] = Field(1, ge=1)
    address: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


class UpdateOrderStatusRequest(CamelModel):
    status: Optional[str] = None


def populate_order(db: Database, order: Dict[str, Any]) -> Dict[str, Any]:
    order = dict(order)
    user = db["user"].find_one({"_id": order.get("user")}, USER_PROJECTION)
    if user is not None:
        order["user"] = user
    pharmacy = db["pharmacy"].find_one({"_id": order.get("pharmacy")}, PHARMACY_PROJECTION)
    if pharmacy is not None:
        order["pharmacy"] = pharmacy
    return order


def create_order(db: Database, user: Dict[str, Any], pharmacy_id: Optional[str], medicine_name: Optional[str],
                 quantity: int = 1, address: Optional[str] = None, phone: Optional[str] = None,
                 notes: Optional[str] = None) -> Dict[str, Any]:
    if not pharmacy_id or not medicine_name or not address or not phone:
        raise ValidationError("بيانات الطلب غير كاملة")

    pharmacy = get_pharmacy(db, pharmacy_id)
    if pharmacy is None:
        raise NotFoundError(PHARMACY_NOT_FOUND)

    order = Order(
        user=user["_id"],
        pharmacy=pharmacy["_id"],
        medicine=OrderMedicine(name=medicine_name, quantity=quantity),
        address=address,
        phone=phone,
        notes=notes or "",
    )
    order_id = create_document(db, "order", order)
    logger.info("Order %s placed by user %s at pharmacy %s", order_id, user["_id"], pharmacy["_id"])

    notify(
        db,
        pharmacy["admin"],
        "new_order",
        title="طلب جديد",
        message=f"طلب جديد من {user.get('name', '')} للحصول على {medicine_name}",
        order_id=order_id,
    )
    return db["order"].find_one({"_id": order_id})


def update_order_status(db: Database, order_id, user: Dict[str, Any], new_status: Optional[str]) -> Dict[str, Any]:
    if new_status not in ORDER_STATUSES:
        raise ValidationError("حالة الطلب غير صالحة")

    oid = to_object_id(order_id)
    order = db["order"].find_one({"_id": oid}) if oid is not None else None
    if order is None:
        raise NotFoundError(ORDER_NOT_FOUND)

    if find_owned_pharmacy(db, order["pharmacy"], user) is None:
        raise ForbiddenError("غير مصرح لك بتحديث هذا الطلب")

    order = db["order"].find_one_and_update(
        {"_id": order["_id"]},
        {"$set": {"status": new_status, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    logger.info("Order %s set to %s by admin %s", order["_id"], new_status, user["_id"])

    notify(
        db,
        order["user"],
        "order_status_change",
        title="تحديث حالة الطلب",
        message=f"تم تحديث حالة طلبك إلى: {new_status}",
        order_id=order["_id"],
    )
    return order


def get_order(db: Database, order_id, user: Dict[str, Any]) -> Dict[str, Any]:
    oid = to_object_id(order_id)
    order = db["order"].find_one({"_id": oid}) if oid is not None else None
    if order is None:
        raise NotFoundError(ORDER_NOT_FOUND)
    # Any admin may read any order; customers only their own.
    if user.get("role") != "admin" and order["user"] != user["_id"]:
        raise ForbiddenError("غير مصرح لك بعرض هذا الطلب")
    return order


def list_orders(db: Database, user: Dict[str, Any]) -> List[Dict[str, Any]]:
    if user.get("role") == "admin":
        pharmacy = get_admin_pharmacy(db, user["_id"])
        if pharmacy is None:
            return []
        query = {"pharmacy": pharmacy["_id"]}
    else:
        query = {"user": user["_id"]}
    return list(db["order"].find(query).sort(NEWEST_FIRST))


@router.get("")
@handle_errors("حدث خطأ أثناء جلب الطلبات")
def get_orders(current=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"orders": serialize_doc([populate_order(db, o) for o in list_orders(db, current)])}


@router.get("/{order_id}")
@handle_errors("حدث خطأ أثناء جلب الطلب")
def get_order_route(order_id: str, current=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"order": serialize_doc(populate_order(db, get_order(db, order_id, current)))}


@router.post("", status_code=status.HTTP_201_CREATED)
@handle_errors("حدث خطأ أثناء إنشاء الطلب")
def create_order_route(payload: CreateOrderRequest, current=Depends(get_current_user),
                       db: Database = Depends(get_db)):
    order = create_order(
        db,
        current,
        payload.pharmacy_id,
        payload.medicine_name,
        quantity=payload.quantity or 1,
        address=payload.address,
        phone=payload.phone,
        notes=payload.notes,
    )
    return {"order": serialize_doc(populate_order(db, order))}


@router.patch("/{order_id}/status")
@handle_errors("حدث خطأ أثناء تحديث حالة الطلب")
def update_order_status_route(order_id: str, payload: UpdateOrderStatusRequest,
                              current=Depends(get_current_user), db: Database = Depends(get_db)):
    order = update_order_status(db, order_id, current, payload.status)
    return {"order": serialize_doc(populate_order(db, order))}
