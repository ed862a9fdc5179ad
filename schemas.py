"""
Database Schemas for the pharmacy delivery service

Collections:
- user: customers ("user") and pharmacy admins ("admin")
- pharmacy: partner pharmacy profile with its embedded medicine catalog
- order: medicine orders placed by a user against one pharmacy
- notification: messages for a recipient user, tied to an order when relevant

Documents are stored with snake_case keys. The API speaks camelCase, so
request payloads derive from ``CamelModel``.
"""

from datetime import datetime
from typing import List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

ROLES = ("user", "admin")
ORDER_STATUSES = ("pending", "accepted", "rejected", "completed")
NOTIFICATION_TYPES = ("new_order", "order_status_change", "other")

DEFAULT_WORKING_HOURS = "8:00 ص - 9:00 م"
DEFAULT_PHARMACY_IMAGE = "🏪"


class CamelModel(BaseModel):
    """Base for request payloads: accepts camelCase keys (and snake_case)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentModel(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)


class User(DocumentModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address, stored lowercase")
    password_hash: str = Field(..., description="bcrypt hash")
    role: Literal["user", "admin"] = Field("user", description="role: admin or user")
    phone: str = ""
    address: str = ""
    city: str = ""
    postal_code: str = ""
    pharmacy: Optional[ObjectId] = Field(None, description="Pharmacy owned by an admin")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Medicine(DocumentModel):
    """Catalog entry embedded in a pharmacy document."""
    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
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


class Pharmacy(DocumentModel):
    name: str
    address: str
    phone: str
    admin: ObjectId = Field(..., description="Owning admin user")
    rating: float = Field(5.0, ge=0, le=5)
    specialties: List[str] = Field(default_factory=list)
    working_hours: str = DEFAULT_WORKING_HOURS
    image: str = DEFAULT_PHARMACY_IMAGE
    medicines: List[Medicine] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderMedicine(BaseModel):
    """Snapshot of what was ordered."""
    name: str
    quantity: int = Field(1, ge=1)


class Order(DocumentModel):
    user: ObjectId
    pharmacy: ObjectId
    medicine: OrderMedicine
    status: Literal["pending", "accepted", "rejected", "completed"] = "pending"
    address: str
    phone: str
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Notification(DocumentModel):
    recipient: ObjectId
    type: Literal["new_order", "order_status_change", "other"]
    order: Optional[ObjectId] = None
    title: str
    message: str
    read: bool = False
    created_at: Optional[datetime] = None
