"""
MongoDB access helpers.

One client per process, created from DATABASE_URL / DATABASE_NAME. Route
handlers get the database through ``get_db`` so tests can swap it out.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "pharmacy_delivery")

client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
db = client[DATABASE_NAME]

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


def get_db() -> Database:
    return db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_indexes(database: Database) -> None:
    database["user"].create_index("email", unique=True)
    # one pharmacy per admin
    database["pharmacy"].create_index("admin", unique=True)
    database["pharmacy"].create_index("medicines._id")
    database["order"].create_index([("pharmacy", ASCENDING), ("created_at", DESCENDING)])
    database["order"].create_index([("user", ASCENDING), ("created_at", DESCENDING)])
    database["notification"].create_index([("recipient", ASCENDING), ("created_at", DESCENDING)])


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id coming from a client. Returns None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> ObjectId:
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = data.copy()
    data_dict["created_at"] = utcnow()
    data_dict["updated_at"] = utcnow()
    return database[collection_name].insert_one(data_dict).inserted_id


def get_documents(database: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  limit: Optional[int] = None, skip: int = 0) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {}).sort(NEWEST_FIRST)
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def serialize_doc(value: Any) -> Any:
    """Render a stored document for the API: ``_id`` -> ``id``, camelCase keys, string ids, ISO dates."""
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            if k == "_id":
                out["id"] = serialize_doc(v)
            else:
                out[to_camel(k)] = serialize_doc(v)
        return out
    if isinstance(value, list):
        return [serialize_doc(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value
