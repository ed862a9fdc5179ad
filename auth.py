import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, status
from pydantic import EmailStr
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_db
from errors import AuthError, ConflictError, ValidationError, handle_errors
from pharmacies import create_pharmacy
from schemas import CamelModel, User
from security import (
    create_access_token,
    get_password_hash,
    get_user_by_email,
    to_safe_json,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

EMAIL_TAKEN = "البريد مستخدم مسبقاً"
BAD_CREDENTIALS = "بيانات الدخول غير صحيحة"


class RegisterRequest(CamelModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    role: Optional[str] = None
    pharmacy_name: Optional[str] = None
    pharmacy_specialties: Optional[List[str]] = None
    pharmacy_working_hours: Optional[str] = None
    pharmacy_image: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


def register_user(db: Database, payload: RegisterRequest) -> Tuple[Dict[str, Any], str]:
    """Create a user, and for admins their pharmacy as well.

    User and pharmacy are two writes. If the pharmacy cannot be created the
    user is deleted again, so an admin never exists without a pharmacy.
    """
    if not payload.email or not payload.password or not payload.name or not payload.phone:
        raise ValidationError("الرجاء ملء جميع الحقول المطلوبة")

    is_admin = payload.role == "admin"
    if is_admin and (not payload.pharmacy_name or not payload.address or not payload.phone):
        raise ValidationError("يجب تقديم معلومات الصيدلية كاملة (الاسم، العنوان، رقم الهاتف) للتسجيل كمدير")

    email = str(payload.email).lower()
    if get_user_by_email(db, email):
        raise ConflictError(EMAIL_TAKEN)

    user = User(
        email=email,
        name=payload.name,
        password_hash=get_password_hash(payload.password),
        role="admin" if is_admin else "user",
        phone=payload.phone or "",
        address=payload.address or "",
        city=payload.city or "",
        postal_code=payload.postal_code or "",
    )
    try:
        user_id = create_document(db, "user", user)
    except DuplicateKeyError:
        raise ConflictError(EMAIL_TAKEN)

    if is_admin:
        try:
            create_pharmacy(
                db,
                user_id,
                name=payload.pharmacy_name,
                address=payload.address,
                phone=payload.phone,
                specialties=payload.pharmacy_specialties,
                working_hours=payload.pharmacy_working_hours,
                image=payload.pharmacy_image,
            )
        except Exception:
            logger.warning("Pharmacy creation failed, removing admin %s", user_id)
            db["user"].delete_one({"_id": user_id})
            raise

    created = db["user"].find_one({"_id": user_id})
    logger.info("Registered %s %s", created["role"], user_id)
    return created, create_access_token(created)


def login_user(db: Database, email: Optional[str], password: Optional[str]) -> Tuple[Dict[str, Any], str]:
    if not email or not password:
        raise ValidationError("البريد وكلمة المرور مطلوبة")
    user = get_user_by_email(db, email)
    # Same answer for unknown email and wrong password.
    if not user or not verify_password(password, user["password_hash"]):
        raise AuthError(BAD_CREDENTIALS)
    return user, create_access_token(user)


@router.post("/register", status_code=status.HTTP_201_CREATED)
@handle_errors("حدث خطأ أثناء التسجيل")
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    user, token = register_user(db, payload)
    return {"user": to_safe_json(user), "token": token}


@router.post("/login")
@handle_errors("حدث خطأ أثناء تسجيل الدخول")
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    user, token = login_user(db, payload.email, payload.password)
    return {"user": to_safe_json(user), "token": token}
