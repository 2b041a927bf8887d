"""
Row Store Service - Generic CRUD over named record collections.

Each collection behaves like a sheet: a header row defines the columns, rows
are read back as objects keyed by header, and writes only ever touch the
named columns. Lookups are by primary key instead of scanning rows.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime, timezone
from enum import Enum
import json
import logging

from ..config import settings
from ..core import ids
from ..exceptions import UnknownCollectionException, RecordNotFoundException, DuplicateIdException, AppException
from .models import COLLECTIONS, ID_PREFIXES, headers

# Set up logging
logger = logging.getLogger(__name__)

MAX_ID_ATTEMPTS = 50

def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()

def to_cell(value: Any) -> str:
    """
    Convert a payload value to the text stored in a cell.

    Args:
        value: Any JSON value

    Returns:
        str: "" for None, JSON for lists and objects, str() otherwise
    """
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)

def get_model(collection: str):
    """
    Resolve a collection name to its model.

    Raises:
        UnknownCollectionException: If the collection does not exist
    """
    model = COLLECTIONS.get(collection)
    if model is None:
        raise UnknownCollectionException(collection)
    return model

def row_to_dict(model, row) -> Dict[str, str]:
    """
    Serialize a row as an object keyed by column header.
    """
    return {name: (getattr(row, name) if getattr(row, name) is not None else "") for name in headers(model)}

def get_all_rows(db: Session, collection: str) -> List[Dict[str, str]]:
    """
    Get every row of one collection, oldest first.
    """
    model = get_model(collection)
    rows = db.query(model).order_by(model.created_at, model.id).all()
    return [row_to_dict(model, row) for row in rows]

def get_all_data(db: Session) -> Dict[str, List[Dict[str, str]]]:
    """
    Get every row of every collection.

    No filtering, pagination or projection is applied; the whole dataset is
    returned on each call.

    Args:
        db: Database session

    Returns:
        Dict: Collection name -> list of row objects
    """
    return {collection: get_all_rows(db, collection) for collection in COLLECTIONS}

def find_row(db: Session, collection: str, record_id: str):
    """
    Get a row by id.

    Args:
        db: Database session
        collection: Collection name
        record_id: Value of the id column

    Returns:
        The ORM row

    Raises:
        RecordNotFoundException: If no row carries the id
    """
    model = get_model(collection)
    row = db.get(model, str(record_id)) if record_id not in (None, "") else None
    if row is None:
        raise RecordNotFoundException(collection, str(record_id))
    return row

def generate_unique_id(db: Session, collection: str, prefix: Optional[str] = None) -> str:
    """
    Draw server ids until one is unused in the collection.

    Raises:
        AppException: If no free id was found
    """
    model = get_model(collection)
    prefix = prefix or ID_PREFIXES[collection]
    for _ in range(MAX_ID_ATTEMPTS):
        candidate = ids.server_id(prefix, settings.server_id_max)
        if db.get(model, candidate) is None:
            return candidate
    raise AppException(503, f"Could not allocate a unique id in {collection}")

def _commit(db: Session, context: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error during {context}: {str(e)}")
        raise

def create_row(db: Session, collection: str, fields: Dict[str, Any], id_prefix: Optional[str] = None) -> str:
    """
    Append a row.

    An id is generated when the payload has none and a creation timestamp is
    stamped when absent. Values are placed by header; headers missing from the
    payload become "", payload keys without a header are ignored.

    Args:
        db: Database session
        collection: Collection name
        fields: Row values keyed by header
        id_prefix: Prefix for a generated id (defaults to the collection's)

    Returns:
        str: Id of the new row

    Raises:
        DuplicateIdException: If a supplied id is already taken
    """
    model = get_model(collection)
    columns = headers(model)
    values = dict(fields or {})

    if not values.get("id"):
        values["id"] = generate_unique_id(db, collection, id_prefix)
    elif db.get(model, str(values["id"])) is not None:
        raise DuplicateIdException(collection, str(values["id"]))
    if "created_at" in columns and not values.get("created_at"):
        values["created_at"] = now_iso()

    ignored = sorted(set(values) - set(columns))
    if ignored:
        logger.debug(f"Ignoring fields without header in {collection}: {ignored}")

    row = model(**{name: to_cell(values.get(name)) for name in columns})
    db.add(row)
    try:
        _commit(db, f"create in {collection}")
    except IntegrityError:
        raise DuplicateIdException(collection, str(values["id"]))
    logger.info(f"Created {collection} row {row.id}")
    return row.id

def update_row(db: Session, collection: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, str]:
    """
    Overwrite the named columns of one row; other columns are untouched.

    Args:
        db: Database session
        collection: Collection name
        record_id: Id of the row
        fields: New values keyed by header

    Returns:
        Dict: The updated row

    Raises:
        RecordNotFoundException: If no row carries the id
    """
    model = get_model(collection)
    row = find_row(db, collection, record_id)
    columns = set(headers(model))

    for name, value in (fields or {}).items():
        if name == "id" or name not in columns:
            continue
        setattr(row, name, to_cell(value))

    _commit(db, f"update of {collection} row {record_id}")
    logger.info(f"Updated {collection} row {record_id}: {sorted(k for k in (fields or {}) if k in columns and k != 'id')}")
    return row_to_dict(model, row)

def delete_row(db: Session, collection: str, record_id: str) -> None:
    """
    Remove one row.

    Raises:
        RecordNotFoundException: If no row carries the id
    """
    row = find_row(db, collection, record_id)
    db.delete(row)
    _commit(db, f"delete of {collection} row {record_id}")
    logger.info(f"Deleted {collection} row {record_id}")
