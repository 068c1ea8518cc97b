"""SQLite database client wrapper with CRUD operations."""

import asyncio
import json
import logging
import re
import threading
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import constants, settings


logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Raised when a storage operation fails."""


class RecordNotFoundError(DatabaseError, KeyError):
    """Raised when a record does not exist."""


# Equality filters: column -> value. Range filters: column -> (lower, upper), both inclusive, None = open.
Filters = dict[str, Any]
RangeFilters = dict[str, tuple[Any, Any]]

_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _validate_identifier(name: str, kind: str = "collection") -> None:
    """Validate that an identifier contains only alphanumeric characters and underscores."""
    if not _IDENTIFIER_PATTERN.match(name):
        msg = f"Invalid {kind} name: {name}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings for Pydantic compatibility."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and (key == "id" or key.endswith("_id")):
            converted[key] = str(value)
    return converted


def _to_db_value(value: Any) -> Any:
    """Convert a Python value into something SQLite can bind."""
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def build_where_clause(
    filters: Filters | None = None,
    ranges: RangeFilters | None = None,
) -> tuple[str, list[Any]]:
    """Build a parameterised WHERE clause from typed equality and range filters."""
    conditions: list[str] = []
    params: list[Any] = []

    for column, value in (filters or {}).items():
        _validate_identifier(column, "column")
        if value is None:
            conditions.append(f"{column} IS NULL")
        else:
            conditions.append(f"{column} = ?")
            params.append(_to_db_value(value))

    for column, (lower, upper) in (ranges or {}).items():
        _validate_identifier(column, "column")
        if lower is not None:
            conditions.append(f"{column} >= ?")
            params.append(_to_db_value(lower))
        if upper is not None:
            conditions.append(f"{column} <= ?")
            params.append(_to_db_value(upper))

    if not conditions:
        return "", []
    return "WHERE " + " AND ".join(conditions), params


def build_order_clause(sort: str) -> str:
    """Translate a sort spec ("-completion_date,-completed_at") into an ORDER BY clause."""
    if not sort:
        return "ORDER BY id ASC"

    parts = []
    for raw_field in sort.split(","):
        field = raw_field.strip()
        direction = "ASC"
        if field.startswith("-"):
            direction = "DESC"
            field = field[1:]
        elif field.startswith("+"):
            field = field[1:]
        _validate_identifier(field, "sort field")
        parts.append(f"{field} {direction}")
    return "ORDER BY " + ", ".join(parts)


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    conn = _db_connections.pop(cache_key, None)
    if conn is None:
        return

    try:
        await conn.close()
        logger.info("Closed SQLite connection", extra={"db_path": str(path)})
    except Exception as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": str(path)})


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core import schema  # noqa: PLC0415 - schema imports the module registry

    await schema.init_db(db_path=db_path)


def _wrap_error(e: Exception, *, collection: str, action: str) -> DatabaseError:
    if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
        logger.error("Table not found", extra={"collection": collection})
        return DatabaseError(f"Table '{collection}' does not exist. Call init_db() first.")
    logger.error(f"{action}_failed", extra={"collection": collection, "error": str(e)})
    return DatabaseError(f"Failed to {action.replace('_', ' ')} in {collection}: {e}")


def _row_to_record(cursor: aiosqlite.Cursor, row: tuple) -> dict[str, Any]:
    columns = [description[0] for description in cursor.description]
    return _convert_record_ids(dict(zip(columns, row, strict=True)))


def _parse_record_id(collection: str, record_id: str) -> int:
    if not str(record_id).isdigit():
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
    return int(record_id)


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    _validate_identifier(collection)
    try:
        conn = await get_connection()

        columns = list(data.keys())
        for column in columns:
            _validate_identifier(column, "column")
        placeholders_str = ", ".join("?" for _ in columns)
        values = [_to_db_value(data[key]) for key in columns]

        query = f"INSERT INTO {collection} ({', '.join(columns)}) VALUES ({placeholders_str})"  # noqa: S608 - identifiers are validated
        cursor = await conn.execute(query, values)
        await conn.commit()
        record_id = cursor.lastrowid
    except Exception as e:
        raise _wrap_error(e, collection=collection, action="create_record") from e

    logger.info("Created record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=str(record_id))


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    _validate_identifier(collection)
    row_id = _parse_record_id(collection, record_id)
    try:
        conn = await get_connection()
        cursor = await conn.execute(f"SELECT * FROM {collection} WHERE id = ?", (row_id,))  # noqa: S608
        row = await cursor.fetchone()
    except Exception as e:
        raise _wrap_error(e, collection=collection, action="get_record") from e

    if row is None:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
    return _row_to_record(cursor, row)


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    _validate_identifier(collection)
    row_id = _parse_record_id(collection, record_id)
    payload = {**data, "updated": _now_iso()}
    for column in payload:
        _validate_identifier(column, "column")

    try:
        conn = await get_connection()
        set_clause = ", ".join(f"{key} = ?" for key in payload)
        values = [_to_db_value(value) for value in payload.values()]
        values.append(row_id)

        cursor = await conn.execute(f"UPDATE {collection} SET {set_clause} WHERE id = ?", values)  # noqa: S608
        await conn.commit()
    except Exception as e:
        raise _wrap_error(e, collection=collection, action="update_record") from e

    if cursor.rowcount == 0:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    _validate_identifier(collection)
    row_id = _parse_record_id(collection, record_id)
    try:
        conn = await get_connection()
        cursor = await conn.execute(f"DELETE FROM {collection} WHERE id = ?", (row_id,))  # noqa: S608
        await conn.commit()
    except Exception as e:
        raise _wrap_error(e, collection=collection, action="delete_record") from e

    if cursor.rowcount == 0:
        raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def delete_records(*, collection: str, filters: Filters) -> int:
    """Delete every record matching the equality filters and return how many were removed."""
    if not filters:
        msg = "Refusing to delete without filters"
        raise ValueError(msg)

    _validate_identifier(collection)
    where_clause, params = build_where_clause(filters)
    try:
        conn = await get_connection()
        cursor = await conn.execute(f"DELETE FROM {collection} {where_clause}", params)  # noqa: S608
        await conn.commit()
    except Exception as e:
        raise _wrap_error(e, collection=collection, action="delete_records") from e

    logger.info("Deleted records", extra={"collection": collection, "count": cursor.rowcount})
    return cursor.rowcount


async def list_records(
    *,
    collection: str,
    filters: Filters | None = None,
    ranges: RangeFilters | None = None,
    sort: str = "",
    page: int = 1,
    per_page: int = 50,
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    _validate_identifier(collection)
    where_clause, params = build_where_clause(filters, ranges)
    order_clause = build_order_clause(sort)
    offset = (page - 1) * per_page

    try:
        conn = await get_connection()
        query = f"SELECT * FROM {collection} {where_clause} {order_clause} LIMIT ? OFFSET ?"  # noqa: S608
        cursor = await conn.execute(query, [*params, per_page, offset])
        rows = await cursor.fetchall()
    except Exception as e:
        raise _wrap_error(e, collection=collection, action="list_records") from e

    records = [_row_to_record(cursor, row) for row in rows]
    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def list_all_records(
    *,
    collection: str,
    filters: Filters | None = None,
    ranges: RangeFilters | None = None,
    sort: str = "",
    page_size: int = constants.DEFAULT_PER_PAGE_LIMIT,
) -> list[dict[str, Any]]:
    """List every matching record, fetching page by page until a short page comes back.

    ``id`` is appended to the sort as a tiebreaker so pages never overlap.
    """
    if page_size < 1:
        msg = "page_size must be positive"
        raise ValueError(msg)

    sort_fields = [field.strip().lstrip("+-") for field in sort.split(",") if field.strip()]
    stable_sort = sort if "id" in sort_fields else ",".join(filter(None, [sort, "+id"]))

    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection,
            filters=filters,
            ranges=ranges,
            sort=stable_sort,
            page=page,
            per_page=page_size,
        )
        records.extend(batch)
        if len(batch) < page_size:
            return records
        page += 1


async def get_first_record(*, collection: str, filters: Filters) -> dict[str, Any] | None:
    """Return the first record matching the filters, or None."""
    records = await list_records(collection=collection, filters=filters, per_page=1)
    return records[0] if records else None


async def upsert_record(*, collection: str, keys: Filters, data: dict[str, Any]) -> dict[str, Any]:
    """Insert or update the record uniquely identified by ``keys``.

    Requires a UNIQUE index over the key columns.
    """
    if not keys:
        msg = "Upsert requires at least one key column"
        raise ValueError(msg)

    _validate_identifier(collection)
    row = {**keys, **data}
    for column in row:
        _validate_identifier(column, "column")

    columns = list(row.keys())
    values = [_to_db_value(row[column]) for column in columns]
    update_columns = [column for column in data if column not in keys]
    set_clause = ", ".join([*(f"{column} = excluded.{column}" for column in update_columns), "updated = ?"])

    try:
        conn = await get_connection()
        query = (
            f"INSERT INTO {collection} ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)}) "  # noqa: S608
            f"ON CONFLICT ({', '.join(keys)}) DO UPDATE SET {set_clause}"
        )
        await conn.execute(query, [*values, _now_iso()])
        await conn.commit()
    except Exception as e:
        raise _wrap_error(e, collection=collection, action="upsert_record") from e

    record = await get_first_record(collection=collection, filters=keys)
    if record is None:
        raise DatabaseError(f"Upserted record vanished from {collection}: {keys}")

    logger.info("Upserted record", extra={"collection": collection, "record_id": record["id"]})
    return record
