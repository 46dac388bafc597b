"""Database schema installation for the Postgres store."""

from typing import Any

from ._postgres import load_file


def install_sql(prefix: str = "public") -> str:
    """Get the SQL for installing the Postgres store tables.

    Returns the raw SQL statements for creating the record, sorted set and set
    tables along with their indexes. This is intended for integration with
    migration frameworks like Django or Alembic.

    Args:
        prefix: PostgreSQL schema where the tables will be located (default: "public")

    Returns:
        SQL string for schema installation

    Example (Alembic):
        >>> from alembic import op
        >>> from quay.schema import install_sql
        >>>
        >>> def upgrade():
        ...     op.execute(install_sql())
    """
    return load_file("install.sql", prefix)


def uninstall_sql(prefix: str = "public") -> str:
    """Get the SQL for uninstalling the Postgres store tables.

    Args:
        prefix: PostgreSQL schema where the tables are located (default: "public")

    Returns:
        SQL string for schema uninstallation

    Example (Alembic):
        >>> from alembic import op
        >>> from quay.schema import uninstall_sql
        >>>
        >>> def downgrade():
        ...     op.execute(uninstall_sql())
    """
    return load_file("uninstall.sql", prefix)


async def install(pool: Any, prefix: str = "public") -> None:
    """Install the store tables in the specified database.

    All statements are idempotent and safe to run multiple times.

    Args:
        pool: A database connection pool (e.g., AsyncConnectionPool)
        prefix: PostgreSQL schema where the tables will be located (default: "public")

    Example:
        >>> from psycopg_pool import AsyncConnectionPool
        >>> from quay.schema import install
        >>>
        >>> pool = AsyncConnectionPool(conninfo=DATABASE_URL, open=False)
        >>> await pool.open()
        >>> await install(pool)
    """
    async with pool.connection() as conn:
        await conn.execute(install_sql(prefix))


async def uninstall(pool: Any, prefix: str = "public") -> None:
    """Drop the store tables from the specified database.

    Args:
        pool: A database connection pool (e.g., AsyncConnectionPool)
        prefix: PostgreSQL schema where the tables are located (default: "public")
    """
    async with pool.connection() as conn:
        await conn.execute(uninstall_sql(prefix))
