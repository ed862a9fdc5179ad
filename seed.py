"""
Demo data for a fresh database.

Creates three pharmacy admins, each with their own pharmacy, and one
customer. Does nothing once any user or pharmacy exists.

Accounts:
    admin@medfast.com / admin123   (صيدلية النور)
    admin2@medfast.com / admin123  (صيدلية الأمل)
    admin3@medfast.com / admin123  (صيدلية السلام)
    user@medfast.com / user123
"""

import logging

from pymongo.database import Database

from database import create_document
from pharmacies import create_pharmacy
from schemas import Medicine, User
from security import get_password_hash

logger = logging.getLogger(__name__)

ADMINS = [
    {
        "user": {
            "name": "مدير النظام",
            "email": "admin@medfast.com",
            "phone": "0612345678",
            "address": "الدار البيضاء، المغرب",
            "city": "الدار البيضاء",
            "postal_code": "20000",
        },
        "pharmacy": {
            "name": "صيدلية النور",
            "address": "شارع محمد الخامس، الدار البيضاء",
            "phone": "0522123456",
            "specialties": ["أدوية عامة", "أدوية الأطفال", "مستحضرات التجميل"],
            "working_hours": "8:00 ص - 10:00 م",
            "image": "🏪",
            "medicines": [
                {"name": "Paracetamol 500mg", "description": "مسكن للألم وخافض للحرارة", "price": 15},
                {"name": "Ibuprofen 400mg", "description": "مضاد للالتهاب ومسكن للألم", "price": 25},
            ],
        },
    },
    {
        "user": {
            "name": "مدير صيدلية الأمل",
            "email": "admin2@medfast.com",
            "phone": "0522234567",
            "address": "حي المعاريف، الدار البيضاء",
            "city": "الدار البيضاء",
            "postal_code": "20000",
        },
        "pharmacy": {
            "name": "صيدلية الأمل",
            "address": "حي المعاريف، الدار البيضاء",
            "phone": "0522234567",
            "specialties": ["أدوية القلب", "رعاية كبار السن", "أجهزة طبية"],
            "working_hours": "9:00 ص - 9:00 م",
            "image": "💊",
            "medicines": [
                {"name": "Aspirin 100mg", "description": "مضاد للتجلط وحماية القلب", "price": 20},
                {"name": "Vitamin D3", "description": "مكمل غذائي لفيتامين د", "price": 35},
            ],
        },
    },
    {
        "user": {
            "name": "مدير صيدلية السلام",
            "email": "admin3@medfast.com",
            "phone": "0522345678",
            "address": "شارع الحسن الثاني، الدار البيضاء",
            "city": "الدار البيضاء",
            "postal_code": "20000",
        },
        "pharmacy": {
            "name": "صيدلية السلام",
            "address": "شارع الحسن الثاني، الدار البيضاء",
            "phone": "0522345678",
            "specialties": ["مكملات غذائية", "أعشاب طبية", "منتجات طبيعية"],
            "working_hours": "8:30 ص - 9:30 م",
            "image": "🌿",
            "medicines": [
                {"name": "Omega 3", "description": "مكمل غذائي للأحماض الدهنية", "price": 45},
                {"name": "Multivitamin", "description": "مكمل غذائي متعدد الفيتامينات", "price": 55},
            ],
        },
    },
]

DEMO_USER = {
    "name": "مستخدم تجريبي",
    "email": "user@medfast.com",
    "phone": "0687654321",
    "address": "الرباط، المغرب",
    "city": "الرباط",
    "postal_code": "10000",
}


def seed_database(db: Database) -> bool:
    """Insert the demo accounts. Returns False when the database already has data."""
    if db["user"].count_documents({}) > 0 or db["pharmacy"].count_documents({}) > 0:
        logger.info("Database already seeded. Skipping...")
        return False

    logger.info("Seeding database...")
    for entry in ADMINS:
        admin_id = create_document(
            db, "user", User(password_hash=get_password_hash("admin123"), role="admin", **entry["user"])
        )
        pharmacy = dict(entry["pharmacy"])
        pharmacy["medicines"] = [Medicine(**m).model_dump(by_alias=True) for m in pharmacy["medicines"]]
        create_pharmacy(db, admin_id, **pharmacy)

    create_document(db, "user", User(password_hash=get_password_hash("user123"), role="user", **DEMO_USER))
    logger.info("Database seeded: %d admins with pharmacies, 1 user", len(ADMINS))
    return True
