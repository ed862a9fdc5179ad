"""
Medicine catalog endpoints.

Medicines live inside their pharmacy document, so every write locates the
owning pharmacy by the medicine's sub-document id and checks that the caller
administers it.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field
from pydantic import ValidationError as SchemaError
from pymongo.database import Database

from database import get_db, serialize_doc, to_object_id, utcnow
from errors import ForbiddenError, NotFoundError, ValidationError, handle_errors
from pharmacies import MedicineIn, get_pharmacy
from schemas import CamelModel, Medicine
from security import get_current_admin, owns_pharmacy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/medicines", tags=["medicines"])

MEDICINE_NOT_FOUND = "Medicine not found"


class CreateMedicineRequest(MedicineIn):
    pharmacy_id: Optional[str] = None


class UpdateMedicineRequest(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    in_stock: Optional[bool] = None
    stock: Optional[int] = Field(None, ge=0)
    category: Optional[str] = None
    image: Optional[str] = None
    manufacturer: Optional[str] = None
    expiry_date: Optional[str] = None
    dosage: Optional[str] = None
    side_effects: Optional[List[str]] = None
    instructions: Optional[str] = None
    prescription: Optional[bool] = None


class StockRequest(CamelModel):
    stock: Optional[int] = Field(None, ge=0)


def medicine_view(pharmacy: Dict[str, Any], medicine: Dict[str, Any]) -> Dict[str, Any]:
    view = serialize_doc(medicine)
    view["pharmacyId"] = str(pharmacy["_id"])
    view["pharmacyName"] = pharmacy.get("name")
    return view


def find_medicine(db: Database, medicine_id) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Return ``(pharmacy, medicine)`` for a medicine sub-document id."""
    oid = to_object_id(medicine_id)
    pharmacy = db["pharmacy"].find_one({"medicines._id": oid}) if oid is not None else None
    if pharmacy is None:
        raise NotFoundError(MEDICINE_NOT_FOUND)
    for medicine in pharmacy.get("medicines", []):
        if medicine.get("_id") == oid:
            return pharmacy, medicine
    raise NotFoundError(MEDICINE_NOT_FOUND)


def require_owner(user: Dict[str, Any], pharmacy: Dict[str, Any], message: str) -> None:
    if not owns_pharmacy(user, pharmacy):
        raise ForbiddenError(message)


def save_medicines(db: Database, pharmacy: Dict[str, Any]) -> None:
    db["pharmacy"].update_one(
        {"_id": pharmacy["_id"]},
        {"$set": {"medicines": pharmacy["medicines"], "updated_at": utcnow()}},
    )


def search_medicines(db: Database, pharmacy_id: Optional[str] = None, category: Optional[str] = None,
                     search: Optional[str] = None, in_stock: Optional[str] = None) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {}
    if pharmacy_id:
        oid = to_object_id(pharmacy_id)
        if oid is None:
            return []
        query["_id"] = oid

    results = []
    for pharmacy in db["pharmacy"].find(query, {"medicines": 1, "name": 1}):
        for medicine in pharmacy.get("medicines", []):
            results.append(medicine_view(pharmacy, medicine))

    if category:
        results = [m for m in results if m.get("category") == category]
    if search:
        needle = search.lower()
        results = [
            m for m in results
            if needle in (m.get("name") or "").lower() or needle in (m.get("description") or "").lower()
        ]
    if in_stock is not None:
        wanted = in_stock == "true"
        results = [m for m in results if m.get("inStock") == wanted]
    return results


def add_medicine(db: Database, user: Dict[str, Any], pharmacy_id: Optional[str],
                 medicine: Dict[str, Any]) -> Dict[str, Any]:
    if not pharmacy_id:
        raise ValidationError("Pharmacy ID is required")
    pharmacy = get_pharmacy(db, pharmacy_id)
    if pharmacy is None:
        raise NotFoundError("Pharmacy not found")
    require_owner(user, pharmacy, "Not authorized to add medicines to this pharmacy")

    db["pharmacy"].update_one(
        {"_id": pharmacy["_id"]},
        {"$push": {"medicines": medicine}, "$set": {"updated_at": utcnow()}},
    )
    logger.info("Medicine %s added to pharmacy %s", medicine["_id"], pharmacy["_id"])
    return medicine_view(pharmacy, medicine)


def update_medicine(db: Database, user: Dict[str, Any], medicine_id, changes: Dict[str, Any]) -> Dict[str, Any]:
    pharmacy, medicine = find_medicine(db, medicine_id)
    require_owner(user, pharmacy, "Not authorized to update this medicine")
    merged = dict(medicine, **{k: v for k, v in changes.items() if v is not None})
    try:
        Medicine(**merged)
    except SchemaError as e:
        logger.info("Rejected update of medicine %s: %s", medicine["_id"], e.errors())
        raise ValidationError("Invalid medicine data")
    medicine.update(merged)
    save_medicines(db, pharmacy)
    return medicine_view(pharmacy, medicine)


def delete_medicine(db: Database, user: Dict[str, Any], medicine_id) -> None:
    pharmacy, medicine = find_medicine(db, medicine_id)
    require_owner(user, pharmacy, "Not authorized to delete this medicine")
    db["pharmacy"].update_one(
        {"_id": pharmacy["_id"]},
        {"$pull": {"medicines": {"_id": medicine["_id"]}}, "$set": {"updated_at": utcnow()}},
    )


def set_stock(db: Database, user: Dict[str, Any], medicine_id, stock: Optional[int]) -> Dict[str, Any]:
    if stock is None:
        raise ValidationError("Stock value is required")
    pharmacy, medicine = find_medicine(db, medicine_id)
    require_owner(user, pharmacy, "Not authorized to update this medicine")
    medicine["stock"] = stock
    medicine["in_stock"] = stock > 0
    save_medicines(db, pharmacy)
    return medicine_view(pharmacy, medicine)


@router.get("")
@handle_errors("Error fetching medicines")
def get_all_medicines(pharmacy_id: Optional[str] = Query(None, alias="pharmacyId"), category: Optional[str] = None,
                      search: Optional[str] = None, in_stock: Optional[str] = Query(None, alias="inStock"),
                      db: Database = Depends(get_db)):
    medicines = search_medicines(db, pharmacy_id, category, search, in_stock)
    return {"medicines": medicines, "total": len(medicines)}


@router.get("/pharmacy")
@handle_errors("Error fetching pharmacy medicines")
def get_medicines_by_pharmacy(pharmacy_id: Optional[str] = Query(None, alias="pharmacyId"),
                              db: Database = Depends(get_db)):
    if not pharmacy_id:
        raise ValidationError("Pharmacy ID is required")
    pharmacy = get_pharmacy(db, pharmacy_id)
    if pharmacy is None:
        raise NotFoundError("Pharmacy not found")
    medicines = [medicine_view(pharmacy, m) for m in pharmacy.get("medicines", [])]
    return {"medicines": medicines, "total": len(medicines)}


@router.get("/categories")
@handle_errors("Error fetching categories")
def get_categories(db: Database = Depends(get_db)):
    categories = []
    for pharmacy in db["pharmacy"].find({}, {"medicines": 1}):
        for medicine in pharmacy.get("medicines", []):
            category = medicine.get("category")
            if category and category not in categories:
                categories.append(category)
    return categories


@router.get("/{medicine_id}")
@handle_errors("Error fetching medicine")
def get_medicine_by_id(medicine_id: str, db: Database = Depends(get_db)):
    pharmacy, medicine = find_medicine(db, medicine_id)
    return medicine_view(pharmacy, medicine)


@router.post("", status_code=status.HTTP_201_CREATED)
@handle_errors("Error creating medicine")
def create_medicine(payload: CreateMedicineRequest, current=Depends(get_current_admin),
                    db: Database = Depends(get_db)):
    medicine = MedicineIn(**payload.model_dump(exclude={"pharmacy_id", "id"})).to_document()
    return add_medicine(db, current, payload.pharmacy_id, medicine)


@router.put("/{medicine_id}")
@handle_errors("Error updating medicine")
def update_medicine_route(medicine_id: str, payload: UpdateMedicineRequest,
                          current=Depends(get_current_admin), db: Database = Depends(get_db)):
    return update_medicine(db, current, medicine_id, payload.model_dump(exclude_unset=True))


@router.delete("/{medicine_id}")
@handle_errors("Error deleting medicine")
def delete_medicine_route(medicine_id: str, current=Depends(get_current_admin), db: Database = Depends(get_db)):
    delete_medicine(db, current, medicine_id)
    return {"message": "Medicine deleted successfully"}


@router.patch("/{medicine_id}/stock")
@handle_errors("Error updating medicine stock")
def update_medicine_stock(medicine_id: str, payload: StockRequest,
                          current=Depends(get_current_admin), db: Database = Depends(get_db)):
    return set_stock(db, current, medicine_id, payload.stock)
