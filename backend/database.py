from __future__ import annotations
import os
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from bson import ObjectId
from bson.decimal128 import Decimal128
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pydantic import BaseModel
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    DATABASE_NAME: str = os.getenv("DATABASE_NAME", "storefront")
    CART_STORAGE_DIR: str = os.getenv("CART_STORAGE_DIR", ".carts")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    PORT: int = int(os.getenv("PORT", 8000))
    MAX_SESSIONS: int = int(os.getenv("MAX_SESSIONS", 1000))


settings = Settings()

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


async def get_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is None:
        _client = AsyncIOMotorClient(settings.DATABASE_URL)
        _db = _client[settings.DATABASE_NAME]
    return _db


def object_id(id_str: str) -> Optional[ObjectId]:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return Decimal128(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, dict):
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


def to_document(data: BaseModel | dict[str, Any]) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    return _encode(data)


def from_document(doc: dict[str, Any]) -> dict[str, Any]:
    doc = _decode(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


async def create_document(collection_name: str, data: BaseModel | dict[str, Any]) -> dict[str, Any]:
    db = await get_db()
    now = datetime.now(timezone.utc)
    data_with_meta = {**to_document(data), "created_at": now, "updated_at": now}
    result = await db[collection_name].insert_one(data_with_meta)
    inserted = await db[collection_name].find_one({"_id": result.inserted_id})
    return from_document(inserted) if inserted else {}


async def create_documents(collection_name: str, items: list[BaseModel | dict[str, Any]]) -> list[str]:
    db = await get_db()
    now = datetime.now(timezone.utc)
    docs = [{**to_document(item), "created_at": now, "updated_at": now} for item in items]
    result = await db[collection_name].insert_many(docs)
    return [str(i) for i in result.inserted_ids]


async def get_documents(collection_name: str, filter_dict: dict[str, Any] | None = None, limit: int = 100) -> list[dict[str, Any]]:
    db = await get_db()
    cursor = db[collection_name].find(_encode(filter_dict or {})).limit(limit)
    docs = []
    async for d in cursor:
        docs.append(from_document(d))
    return docs


async def find_document(collection_name: str, filter_dict: dict[str, Any]) -> Optional[dict[str, Any]]:
    db = await get_db()
    doc = await db[collection_name].find_one(_encode(filter_dict))
    return from_document(doc) if doc else None


async def update_document(collection_name: str, filter_dict: dict[str, Any], changes: dict[str, Any]) -> int:
    db = await get_db()
    update = {**_encode(changes), "updated_at": datetime.now(timezone.utc)}
    result = await db[collection_name].update_one(_encode(filter_dict), {"$set": update})
    return result.matched_count


async def delete_document(collection_name: str, filter_dict: dict[str, Any]) -> int:
    db = await get_db()
    result = await db[collection_name].delete_many(_encode(filter_dict))
    return result.deleted_count
