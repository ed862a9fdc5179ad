import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, status
from pydantic import Field
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_db, serialize_doc, to_object_id, utcnow
from errors import ConflictError, NotFoundError, ValidationError, handle_errors
from schemas import (
    DEFAULT_PHARMACY_IMAGE,
    DEFAULT_WORKING_HOURS,
    CamelModel,
    Medicine,
    Pharmacy,
)
from security import find_owned_pharmacy, get_admin_pharmacy, get_current_admin, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pharmacies", tags=["pharmacies"])

PHARMACY_NOT_FOUND = "لم يتم العثور على الصيدلية"
ALREADY_HAS_PHARMACY = "لديك صيدلية مسجلة بالفعل. لا يمكن إنشاء أكثر من صيدلية واحدة لكل حساب مدير"
ADMIN_PROJECTION = {"name": 1, "email": 1, "phone": 1}
EDITABLE_FIELDS = ("name", "address", "phone", "specialties", "working_hours", "image")


class MedicineIn(CamelModel):
    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    in_stock: bool = True
    stock: Optional[int] = Field(None, ge=0)
    category: Optional[str] = None
    image: Optional[str] = None
    manufacturer: Optional[str] = None
    expiry_date: Optional[str] = None
    dosage: Optional[str] = None
    side_effects: List[str] = Field(default_factory=list)
    instructions: Optional[str] = None
    prescription: bool = False

    def to_document(self, known_ids=()) -> Dict[str, Any]:
        """Build the stored sub-document. A client id is kept only when it is in ``known_ids``."""
        data = self.model_dump(exclude={"id"})
        oid = to_object_id(self.id)
        if oid is not None and oid in known_ids:
            data["_id"] = oid
        return Medicine(**data).model_dump(by_alias=True)


def catalog_documents(pharmacy: Optional[Dict[str, Any]], medicines: List[MedicineIn]) -> List[Dict[str, Any]]:
    """Medicine ids are scoped to their pharmacy, so foreign ids are replaced by fresh ones."""
    known_ids = {m.get("_id") for m in (pharmacy or {}).get("medicines", [])}
    documents = []
    for medicine in medicines:
        document = medicine.to_document(known_ids)
        known_ids.discard(document["_id"])
        documents.append(document)
    return documents


class PharmacyIn(CamelModel):
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    medicines: Optional[List[MedicineIn]] = None
    specialties: Optional[List[str]] = None
    working_hours: Optional[str] = None
    image: Optional[str] = None


class MedicinesIn(CamelModel):
    medicines: List[MedicineIn] = Field(default_factory=list)


def populate_admin(db: Database, pharmacy: Dict[str, Any]) -> Dict[str, Any]:
    pharmacy = dict(pharmacy)
    admin = db["user"].find_one({"_id": pharmacy.get("admin")}, ADMIN_PROJECTION)
    if admin is not None:
        pharmacy["admin"] = admin
    return pharmacy


def get_pharmacy(db: Database, pharmacy_id) -> Optional[Dict[str, Any]]:
    oid = to_object_id(pharmacy_id)
    if oid is None:
        return None
    return db["pharmacy"].find_one({"_id": oid})


def list_pharmacies(db: Database) -> List[Dict[str, Any]]:
    return [populate_admin(db, p) for p in db["pharmacy"].find({})]


def create_pharmacy(db: Database, owner_id: ObjectId, name: Optional[str], address: Optional[str],
                    phone: Optional[str], medicines: Optional[List[Dict[str, Any]]] = None,
                    specialties: Optional[List[str]] = None, working_hours: Optional[str] = None,
                    image: Optional[str] = None) -> Dict[str, Any]:
    """Create the pharmacy of ``owner_id`` and link it back from the user record.

    An admin owns at most one pharmacy. The lookup gives the usual 409, the
    unique index on ``admin`` catches concurrent creations that slip past it.
    """
    if get_admin_pharmacy(db, owner_id) is not None:
        raise ConflictError(ALREADY_HAS_PHARMACY)
    if not name or not address or not phone:
        raise ValidationError("جميع الحقول مطلوبة")

    pharmacy = Pharmacy(
        name=name,
        address=address,
        phone=phone,
        admin=owner_id,
        medicines=medicines or [],
        specialties=specialties or [],
        working_hours=working_hours or DEFAULT_WORKING_HOURS,
        image=image or DEFAULT_PHARMACY_IMAGE,
    )
    try:
        pharmacy_id = create_document(db, "pharmacy", pharmacy)
    except DuplicateKeyError:
        logger.warning("Concurrent pharmacy creation for admin %s", owner_id)
        raise ConflictError(ALREADY_HAS_PHARMACY)

    db["user"].update_one({"_id": owner_id}, {"$set": {"pharmacy": pharmacy_id, "updated_at": utcnow()}})
    logger.info("Pharmacy %s created for admin %s", pharmacy_id, owner_id)
    return db["pharmacy"].find_one({"_id": pharmacy_id})


def update_pharmacy_fields(db: Database, pharmacy: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    """Apply the provided values of ``fields`` to ``pharmacy``. None and blank strings are skipped."""
    update = {k: v for k, v in fields.items() if v is not None and v != ""}
    if update:
        update["updated_at"] = utcnow()
        db["pharmacy"].update_one({"_id": pharmacy["_id"]}, {"$set": update})
    return db["pharmacy"].find_one({"_id": pharmacy["_id"]})


def update_pharmacy(db: Database, pharmacy_id, owner: Dict[str, Any], fields: Dict[str, Any],
                    medicines: Optional[List[MedicineIn]] = None) -> Dict[str, Any]:
    pharmacy = find_owned_pharmacy(db, pharmacy_id, owner)
    if pharmacy is None:
        raise NotFoundError(PHARMACY_NOT_FOUND)
    if medicines is not None:
        fields = dict(fields, medicines=catalog_documents(pharmacy, medicines))
    return update_pharmacy_fields(db, pharmacy, fields)


def delete_pharmacy(db: Database, pharmacy_id, owner: Dict[str, Any]) -> None:
    # Orders and notifications of the pharmacy are left in place.
    pharmacy = find_owned_pharmacy(db, pharmacy_id, owner)
    if pharmacy is None:
        raise NotFoundError(PHARMACY_NOT_FOUND)
    db["pharmacy"].delete_one({"_id": pharmacy["_id"]})
    logger.info("Pharmacy %s deleted by admin %s", pharmacy["_id"], owner["_id"])


def replace_medicines(db: Database, pharmacy_id, owner: Dict[str, Any],
                      medicines: List[MedicineIn]) -> List[Dict[str, Any]]:
    pharmacy = find_owned_pharmacy(db, pharmacy_id, owner)
    if pharmacy is None:
        raise NotFoundError(PHARMACY_NOT_FOUND)
    medicines = catalog_documents(pharmacy, medicines)
    db["pharmacy"].update_one(
        {"_id": pharmacy["_id"]},
        {"$set": {"medicines": medicines, "updated_at": utcnow()}},
    )
    return medicines


@router.get("")
@handle_errors("حدث خطأ أثناء جلب الصيدليات")
def get_all_pharmacies(db: Database = Depends(get_db)):
    return {"pharmacies": serialize_doc(list_pharmacies(db))}


@router.get("/{pharmacy_id}")
@handle_errors("حدث خطأ أثناء جلب الصيدلية")
def get_pharmacy_by_id(pharmacy_id: str, _: dict = Depends(get_current_user), db: Database = Depends(get_db)):
    pharmacy = get_pharmacy(db, pharmacy_id)
    if pharmacy is None:
        raise NotFoundError(PHARMACY_NOT_FOUND)
    return {"pharmacy": serialize_doc(populate_admin(db, pharmacy))}


@router.get("/{pharmacy_id}/medicines")
@handle_errors("حدث خطأ أثناء جلب قائمة الأدوية")
def get_pharmacy_medicines(pharmacy_id: str, db: Database = Depends(get_db)):
    pharmacy = get_pharmacy(db, pharmacy_id)
    if pharmacy is None:
        raise NotFoundError(PHARMACY_NOT_FOUND)
    return {"medicines": serialize_doc(pharmacy.get("medicines", []))}


@router.put("/{pharmacy_id}/medicines")
@handle_errors("حدث خطأ أثناء تحديث قائمة الأدوية")
def update_pharmacy_medicines(pharmacy_id: str, payload: MedicinesIn,
                              current=Depends(get_current_admin), db: Database = Depends(get_db)):
    return {"medicines": serialize_doc(replace_medicines(db, pharmacy_id, current, payload.medicines))}


@router.post("", status_code=status.HTTP_201_CREATED)
@handle_errors("حدث خطأ أثناء إنشاء الصيدلية")
def create_pharmacy_route(payload: PharmacyIn, current=Depends(get_current_admin), db: Database = Depends(get_db)):
    pharmacy = create_pharmacy(
        db,
        current["_id"],
        name=payload.name,
        address=payload.address,
        phone=payload.phone,
        medicines=catalog_documents(None, payload.medicines or []),
        specialties=payload.specialties,
        working_hours=payload.working_hours,
        image=payload.image,
    )
    return {"pharmacy": serialize_doc(pharmacy)}


@router.put("/{pharmacy_id}")
@handle_errors("حدث خطأ أثناء تحديث الصيدلية")
def update_pharmacy_route(pharmacy_id: str, payload: PharmacyIn,
                          current=Depends(get_current_admin), db: Database = Depends(get_db)):
    fields = {name: getattr(payload, name) for name in EDITABLE_FIELDS}
    pharmacy = update_pharmacy(db, pharmacy_id, current, fields, payload.medicines)
    return {"pharmacy": serialize_doc(pharmacy)}


@router.delete("/{pharmacy_id}")
@handle_errors("حدث خطأ أثناء حذف الصيدلية")
def delete_pharmacy_route(pharmacy_id: str, current=Depends(get_current_admin), db: Database = Depends(get_db)):
    delete_pharmacy(db, pharmacy_id, current)
    return {"message": "تم حذف الصيدلية بنجاح"}
