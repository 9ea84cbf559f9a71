"""
tags/store.py -- SQLAlchemy-backed persistence layer for tags.

Uses SQLAlchemy Core (not ORM) so the dataclass in tags/models.py remains the
authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. TagStore is the repository; _row_to_tag is
the mapper. Route handlers never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TagStore("sqlite:///:memory:")
    tag_id = store.create_tag(Tag(tag_name="python", icon="icon-python"))
    store.update_tag(tag_id, icon="icon-snake")
    tags = store.list_tags()
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from tags.models import Tag

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_tags = Table(
    "tags",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tag_name", String(32), nullable=False, unique=True),
    Column("icon", Text, nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_MUTABLE_FIELDS = {"tag_name", "icon"}


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TagStore:
    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_tag(self, tag: Tag) -> int:
        """Insert a tag and return its ID.

        Raises sqlalchemy.exc.IntegrityError if tag_name is already taken.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _tags.insert().values(
                    tag_name=tag.tag_name,
                    icon=tag.icon or "",
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_tag(self, tag_id: int) -> Optional[Tag]:
        with self.engine.connect() as conn:
            row = conn.execute(_tags.select().where(_tags.c.id == tag_id)).fetchone()
        return _row_to_tag(row) if row is not None else None

    def list_tags(self) -> list[Tag]:
        """Return all tags, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(_tags.select().order_by(_tags.c.id)).fetchall()
        return [_row_to_tag(r) for r in rows]

    def update_tag(self, tag_id: int, **fields) -> bool:
        """Update tag_name and/or icon. Returns False if tag_id was not found.

        None values are ignored; with nothing left to change the row (and its
        updated_at) is not touched.

        Unknown field names raise ValueError. Raises IntegrityError when the
        new tag_name collides with another tag.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown tag fields: {unknown!r}")
        values = {k: v for k, v in fields.items() if v is not None}
        if not values:
            return self.get_tag(tag_id) is not None
        values["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_tags.update().where(_tags.c.id == tag_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def delete_tag(self, tag_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_tags.delete().where(_tags.c.id == tag_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


def _row_to_tag(row) -> Tag:
    return Tag(
        id=row.id,
        tag_name=row.tag_name,
        icon=row.icon or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
