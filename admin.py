"""Aggregate views over the signed-in admin's own pharmacy."""

import math
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

from database import get_db, get_documents, serialize_doc
from errors import NotFoundError, handle_errors
from orders import populate_order
from pharmacies import EDITABLE_FIELDS, PharmacyIn, populate_admin, update_pharmacy_fields
from security import get_admin_pharmacy, get_current_admin

router = APIRouter(prefix="/api/admin", tags=["admin"])

NO_PHARMACY = "لم يتم العثور على صيدلية مرتبطة بحسابك"
RECENT_ORDERS = 10


def require_admin_pharmacy(db: Database, admin: Dict[str, Any], **extra) -> Dict[str, Any]:
    pharmacy = get_admin_pharmacy(db, admin["_id"])
    if pharmacy is None:
        raise NotFoundError(NO_PHARMACY, **extra)
    return pharmacy


def dashboard(db: Database, admin: Dict[str, Any]) -> Dict[str, Any]:
    pharmacy = require_admin_pharmacy(db, admin, hasPharmacy=False)
    orders = get_documents(db, "order", {"pharmacy": pharmacy["_id"]}, limit=RECENT_ORDERS)
    statistics = {
        "totalOrders": db["order"].count_documents({"pharmacy": pharmacy["_id"]}),
        "pendingOrders": db["order"].count_documents({"pharmacy": pharmacy["_id"], "status": "pending"}),
        "completedOrders": db["order"].count_documents({"pharmacy": pharmacy["_id"], "status": "completed"}),
        "unreadNotifications": db["notification"].count_documents({"recipient": admin["_id"], "read": False}),
    }
    return {
        "hasPharmacy": True,
        "pharmacy": serialize_doc(populate_admin(db, pharmacy)),
        "orders": serialize_doc([populate_order(db, o) for o in orders]),
        "statistics": statistics,
    }


def pharmacy_orders(db: Database, admin: Dict[str, Any], status: Optional[str], page: int, limit: int):
    pharmacy = require_admin_pharmacy(db, admin)
    query: Dict[str, Any] = {"pharmacy": pharmacy["_id"]}
    if status and status != "all":
        query["status"] = status

    skip = (page - 1) * limit
    orders: List[Dict[str, Any]] = get_documents(db, "order", query, limit=limit, skip=skip)
    total = db["order"].count_documents(query)
    return {
        "orders": serialize_doc([populate_order(db, o) for o in orders]),
        "pagination": {
            "currentPage": page,
            "totalPages": math.ceil(total / limit),
            "totalOrders": total,
            "hasNext": skip + len(orders) < total,
            "hasPrev": page > 1,
        },
    }


@router.get("/dashboard")
@handle_errors("حدث خطأ أثناء جلب بيانات لوحة التحكم")
def get_admin_dashboard(current=Depends(get_current_admin), db: Database = Depends(get_db)):
    return dashboard(db, current)


@router.get("/pharmacy")
@handle_errors("حدث خطأ أثناء جلب بيانات الصيدلية")
def get_my_pharmacy(current=Depends(get_current_admin), db: Database = Depends(get_db)):
    pharmacy = require_admin_pharmacy(db, current, hasPharmacy=False)
    return {"pharmacy": serialize_doc(populate_admin(db, pharmacy)), "hasPharmacy": True}


@router.put("/pharmacy")
@handle_errors("حدث خطأ أثناء تحديث بيانات الصيدلية")
def update_my_pharmacy(payload: PharmacyIn, current=Depends(get_current_admin), db: Database = Depends(get_db)):
    pharmacy = require_admin_pharmacy(db, current)
    fields = {name: getattr(payload, name) for name in EDITABLE_FIELDS}
    pharmacy = update_pharmacy_fields(db, pharmacy, fields)
    return {"pharmacy": serialize_doc(populate_admin(db, pharmacy))}


@router.get("/pharmacy/orders")
@handle_errors("حدث خطأ أثناء جلب طلبات الصيدلية")
def get_my_pharmacy_orders(status: Optional[str] = None, page: int = Query(1, ge=1), limit: int = Query(10, ge=1),
                           current=Depends(get_current_admin), db: Database = Depends(get_db)):
    return pharmacy_orders(db, current, status, page, limit)
