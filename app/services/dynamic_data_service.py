"""
Dynamic data service: per-user key/value store of raw JSON documents.

Values are stored as TEXT exactly as received. Anything that isn't already a
string is serialised with json.dumps first, so callers can pass dicts too.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictException, NotFoundException
from app.models.dynamic_data import DynamicData

logger = logging.getLogger(__name__)

DEFAULT_UPDATED_BY = "system"


def _to_json_text(data: Any) -> str:
    return data if isinstance(data, str) else json.dumps(data)


def get_dynamic_data(db: Session, user_id: str, key: str) -> Optional[DynamicData]:
    return (
        db.query(DynamicData)
        .filter(DynamicData.user_id == user_id, DynamicData.key == key)
        .first()
    )


def save_dynamic_data(
    db: Session,
    user_id: str,
    key: str,
    data: Any,
    updated_by: str = DEFAULT_UPDATED_BY,
) -> DynamicData:
    """Insert a new (user_id, key) record. A duplicate key raises 409."""
    record = DynamicData(
        user_id=user_id,
        key=key,
        data=_to_json_text(data),
        updated_time=datetime.now(timezone.utc),
        updated_by=updated_by,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Dynamic data already exists for user_id=%s key=%s", user_id, key)
        raise ConflictException(f"Data already exists for key '{key}'")
    db.refresh(record)
    logger.info("Dynamic data created for user_id=%s key=%s", user_id, key)
    return record


def update_dynamic_data(
    db: Session,
    user_id: str,
    key: str,
    data: Any,
    updated_by: str = DEFAULT_UPDATED_BY,
) -> DynamicData:
    """Overwrite an existing record. Raises 404 when there is nothing to update."""
    record = get_dynamic_data(db, user_id, key)
    if record is None:
        logger.warning("No dynamic data to update for user_id=%s key=%s", user_id, key)
        raise NotFoundException("Dynamic data")

    record.data = _to_json_text(data)
    record.updated_time = datetime.now(timezone.utc)
    record.updated_by = updated_by
    db.commit()
    db.refresh(record)
    logger.info("Dynamic data updated for user_id=%s key=%s", user_id, key)
    return record


def upsert_dynamic_data(
    db: Session,
    user_id: str,
    key: str,
    data: Any,
    updated_by: str = DEFAULT_UPDATED_BY,
) -> tuple[DynamicData, bool]:
    """Returns (record, created)."""
    if get_dynamic_data(db, user_id, key) is None:
        try:
            return save_dynamic_data(db, user_id, key, data, updated_by), True
        except ConflictException:
            # Inserted concurrently between the lookup and the commit
            pass
    return update_dynamic_data(db, user_id, key, data, updated_by), False
