from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

from logger import get_logger

log = get_logger("database")


def connect(database_url: str, database_name: str) -> Database:
    """Open a client for ``database_url`` and return the named database.

    The handle is passed to each service's ``create_app``; nothing here is
    kept at module level.
    """
    client = MongoClient(database_url, tz_aware=True)
    db = client[database_name]
    log.info(f"Connected to {database_name}")
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: str) -> ObjectId:
    # Raises bson.errors.InvalidId, surfaced as a store error
    return ObjectId(value)


def doc_to_dict(doc: dict) -> dict:
    out = {}
    for k, v in doc.items():
        if isinstance(v, ObjectId):
            out[k] = str(v)
        elif isinstance(v, datetime):
            # The store keeps UTC; naive values are read back without tzinfo
            if v.tzinfo is None:
                v = v.replace(tzinfo=timezone.utc)
            out[k] = v.isoformat()
        else:
            out[k] = v
    if "_id" in out:
        out["id"] = out.pop("_id")
    return out


def create_document(db: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = dict(data)
    result = db[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[dict] = None,
    sort: Optional[List[tuple]] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def describe_store(db: Optional[Database]) -> Dict[str, Any]:
    response: Dict[str, Any] = {
        "database": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    if db is None:
        return response

    response["database"] = db.name
    try:
        response["collections"] = db.list_collection_names()[:10]
        response["connection_status"] = "Connected"
    except Exception as e:
        response["connection_status"] = f"Connected but Error: {str(e)[:50]}"
    return response
