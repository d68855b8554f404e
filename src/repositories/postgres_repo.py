"""Contact store backed by PostgreSQL (any SQLAlchemy URL works) using SQLAlchemy Core."""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import List, Optional

import boto3
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import QueuePool

from models.customer import Contact
from utils.error_handling import NotFoundError, SourceUnavailableError
from utils.logging_config import get_logger
from utils.validators import normalize_identity

logger = get_logger(__name__)

_COLUMNS = (
    "id",
    "name",
    "email",
    "phone",
    "company",
    "position",
    "location",
    "status",
    "last_contact",
    "deal_value",
    "tags",
    "source",
)
_UPDATABLE = frozenset(_COLUMNS) - {"id", "email"}

CREATE_CONTACTS_TABLE = """
    CREATE TABLE IF NOT EXISTS contacts (
        id VARCHAR(64) PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        email VARCHAR(320) NOT NULL,
        phone VARCHAR(64) DEFAULT '',
        company VARCHAR(255) DEFAULT '',
        position VARCHAR(255) DEFAULT '',
        location VARCHAR(255) DEFAULT '',
        status VARCHAR(32) DEFAULT 'lead',
        last_contact VARCHAR(64),
        deal_value FLOAT DEFAULT 0,
        tags TEXT DEFAULT '[]',
        source VARCHAR(64) DEFAULT 'directory'
    )
"""


def create_contact_engine(db_url: str) -> Engine:
    """Create a SQLAlchemy engine with small pool sizes for Lambda reuse."""
    return create_engine(
        db_url,
        poolclass=QueuePool,
        pool_size=1,
        max_overflow=2,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def database_url_from_secret(secret_arn: str) -> Optional[str]:
    """Build a SQLAlchemy URL from an RDS secret in Secrets Manager."""
    try:
        sm = boto3.client("secretsmanager")
        secret = json.loads(sm.get_secret_value(SecretId=secret_arn)["SecretString"])
    except Exception as exc:
        logger.warning("Failed to load DB secret", extra={"error": str(exc)})
        return None

    host = secret.get("host")
    username = secret.get("username")
    password = secret.get("password")
    if not (host and username and password):
        return None
    port = secret.get("port", 5432)
    dbname = secret.get("dbname", "postgres")
    return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{dbname}"


def _to_row(contact: Contact) -> dict:
    row = contact.model_dump(mode="json")
    row["tags"] = json.dumps(contact.tags)
    return row


def _from_row(row: dict) -> Contact:
    data = dict(row)
    data["tags"] = json.loads(data.get("tags") or "[]")
    for key in ("phone", "company", "position", "location"):
        data[key] = data.get(key) or ""
    return Contact.model_validate(data)


class PostgresContactStore:
    """Thin async facade over parameterized SQL."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def create_schema(self) -> None:
        """Create the contacts table if missing."""
        with self.engine.begin() as conn:
            conn.execute(text(CREATE_CONTACTS_TABLE))

    async def search_by_identity(self, identity: str) -> List[Contact]:
        return await self._run(self._search, normalize_identity(identity))

    async def create(self, contact: dict) -> Contact:
        record = Contact(**{"id": str(uuid.uuid4()), **contact})
        await self._run(self._insert, record)
        return record

    async def update(self, contact_id: str, changes: dict) -> Contact:
        return await self._run(self._update, contact_id, changes)

    async def delete(self, contact_id: str) -> None:
        await self._run(self._delete, contact_id)

    async def _run(self, fn, *args):
        """Run blocking SQL on a worker thread."""
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as exc:
            logger.error("Contact store query failed", extra={"error": str(exc)})
            raise SourceUnavailableError("contact store", str(exc)) from exc

    def _fetch_one(self, conn, contact_id: str) -> Optional[dict]:
        query = text(f"SELECT {', '.join(_COLUMNS)} FROM contacts WHERE id = :id")
        row = conn.execute(query, {"id": contact_id}).fetchone()
        return dict(row._mapping) if row else None

    def _search(self, identity: str) -> List[Contact]:
        query = text(
            f"SELECT {', '.join(_COLUMNS)} FROM contacts WHERE lower(email) = :email"
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query, {"email": identity}).fetchall()
        return [_from_row(dict(r._mapping)) for r in rows]

    def _insert(self, contact: Contact) -> None:
        stmt = text(
            f"INSERT INTO contacts ({', '.join(_COLUMNS)}) "
            f"VALUES ({', '.join(':' + c for c in _COLUMNS)})"
        )
        with self.engine.begin() as conn:
            conn.execute(stmt, _to_row(contact))

    def _update(self, contact_id: str, changes: dict) -> Contact:
        with self.engine.begin() as conn:
            current = self._fetch_one(conn, contact_id)
            if current is None:
                raise NotFoundError(f"Contact not found: {contact_id}")
            merged = _from_row(current).model_copy(
                update={k: v for k, v in changes.items() if k in _UPDATABLE}
            )
            merged = Contact.model_validate(merged.model_dump())
            row = _to_row(merged)
            assignments = ", ".join(f"{c} = :{c}" for c in sorted(_UPDATABLE))
            conn.execute(
                text(f"UPDATE contacts SET {assignments} WHERE id = :id"),
                {c: row[c] for c in _UPDATABLE} | {"id": contact_id},
            )
        return merged

    def _delete(self, contact_id: str) -> None:
        with self.engine.begin() as conn:
            result = conn.execute(text("DELETE FROM contacts WHERE id = :id"), {"id": contact_id})
            if result.rowcount == 0:
                raise NotFoundError(f"Contact not found: {contact_id}")
