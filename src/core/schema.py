"""SQLite schema management (code-first approach).

Tables and indexes are declared by the registered feature modules and created
idempotently with ``CREATE ... IF NOT EXISTS``.
"""

import logging

from src.core import db_client, module_registry


logger = logging.getLogger(__name__)


async def init_db(*, db_path: str | None = None) -> None:
    """Create every registered table and index (idempotent)."""
    from src.modules import register_builtin_modules  # noqa: PLC0415 - modules import core

    register_builtin_modules()

    conn = await db_client.get_connection(db_path=db_path)

    table_schemas = module_registry.get_all_table_schemas()
    for table_name, ddl in table_schemas.items():
        await conn.execute(ddl)
        logger.debug("Ensured table", extra={"table": table_name})

    for index_ddl in module_registry.get_all_indexes():
        await conn.execute(index_ddl)

    await conn.commit()
    logger.info("Database schema initialized", extra={"tables": sorted(table_schemas)})
