"""
Schema evolution and first-run seeding for the row store.

Evolution is additive only: missing collections are created and missing
header columns are appended to existing tables. Columns are never dropped or
renamed, so older deployments keep working against a newer schema.
"""
import logging
from typing import Dict, List

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.orm import Session

from ..config import settings
from ..core.permissions import UserRole
from ..core.security import hash_pin
from ..database import Base
from .models import COLLECTIONS, User
from .service import create_row

logger = logging.getLogger(__name__)


class SchemaReport:
    """
    Outcome of a schema check.

    Attributes:
        created: Collections whose tables did not exist
        added_columns: Collection -> columns appended to an existing table
    """

    def __init__(self):
        self.created: List[str] = []
        self.added_columns: Dict[str, List[str]] = {}

    @property
    def changed(self) -> bool:
        return bool(self.created or self.added_columns)


def ensure_schema(engine) -> SchemaReport:
    """
    Create missing collections and add missing header columns.

    Args:
        engine: SQLAlchemy engine

    Returns:
        SchemaReport: What was created or added
    """
    report = SchemaReport()
    inspector = sa.inspect(engine)
    existing_tables = set(inspector.get_table_names())

    for collection, model in COLLECTIONS.items():
        if model.__tablename__ not in existing_tables:
            report.created.append(collection)

    Base.metadata.create_all(bind=engine)

    with engine.begin() as connection:
        op = Operations(MigrationContext.configure(connection))
        for collection, model in COLLECTIONS.items():
            if collection in report.created:
                continue
            present = {column["name"] for column in inspector.get_columns(model.__tablename__)}
            for column in model.__table__.columns:
                if column.name in present:
                    continue
                op.add_column(
                    model.__tablename__,
                    sa.Column(column.name, type(column.type)(), nullable=True, server_default="")
                )
                report.added_columns.setdefault(collection, []).append(column.name)
                logger.info(f"Added missing column {collection}.{column.name}")

    if report.created:
        logger.info(f"Created collections: {report.created}")
    return report


def admin_exists(db: Session) -> bool:
    """
    Check if any admin user exists.

    Args:
        db: Database session

    Returns:
        bool: True if at least one admin exists
    """
    return db.query(User).filter(User.role == UserRole.ADMIN.value).count() > 0


def create_bootstrap_admin(db: Session) -> str:
    """
    Create the default administrator from settings.

    Args:
        db: Database session

    Returns:
        str: Id of the new user
    """
    return create_row(db, "users", {
        "email": settings.bootstrap_admin_email,
        "full_name": settings.bootstrap_admin_name,
        "role": UserRole.ADMIN.value,
        "pin": hash_pin(settings.bootstrap_admin_pin),
    })


def bootstrap_admin_if_needed(db: Session, report: SchemaReport) -> None:
    """
    Seed one administrator when the users collection was just created.

    Args:
        db: Database session
        report: Result of ensure_schema
    """
    if "users" not in report.created:
        return
    if admin_exists(db):
        logger.info("Admin user already present. Bootstrap not needed.")
        return
    user_id = create_bootstrap_admin(db)
    logger.info(f"Bootstrap admin created: {settings.bootstrap_admin_email} (ID: {user_id})")


def migrate(engine, session_factory) -> SchemaReport:
    """
    Run schema evolution and seeding. Called once at startup.
    """
    report = ensure_schema(engine)
    db = session_factory()
    try:
        bootstrap_admin_if_needed(db, report)
    finally:
        db.close()
    return report
