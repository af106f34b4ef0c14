import logging
import re
import ssl
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from agentic_search.config.search_config import DatabaseConnection, FullTextDialect
from agentic_search.core.models.document import RawRow
from agentic_search.core.protocols.lexical_store import QueryRunnerProtocol
from agentic_search.errors import BackendError, BackendErrorKind, ConfigError

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def quote_identifier(name: str) -> str:
    """Backtick-quote a (possibly schema-qualified) identifier.

    Raises:
        ConfigError: If any part is not a plain identifier.
    """
    parts = name.strip().split(".")
    for part in parts:
        if not _IDENTIFIER_RE.match(part):
            raise ConfigError(f"Invalid SQL identifier: {name!r}")
    return ".".join(f"`{part}`" for part in parts)


def build_search_statement(
    table: str,
    search_field: str,
    return_field: str,
    dialect: FullTextDialect = FullTextDialect.TIDB,
) -> str:
    """Build the full-text search statement.

    Only identifiers are rendered into the SQL text; the query and the
    limit are bind parameters (`:query`, `:limit`).
    """
    if return_field.strip() == "*":
        columns = "*"
    else:
        columns = ", ".join(
            quote_identifier(col) for col in return_field.split(",") if col.strip()
        )
        if not columns:
            raise ConfigError(f"Invalid return field: {return_field!r}")

    column = quote_identifier(search_field)
    if dialect is FullTextDialect.MYSQL:
        predicate = f"MATCH({column}) AGAINST (:query IN NATURAL LANGUAGE MODE)"
    else:
        predicate = f"fts_match_word(:query, {column})"

    return f"SELECT {columns} FROM {quote_identifier(table)} WHERE {predicate} LIMIT :limit"


def sanitize_query(query: str) -> str:
    """Strip control characters; whitespace is kept as given."""
    return _CONTROL_CHARS_RE.sub("", query)


class SqlLexicalStore:
    """Full-text search over a relational table."""

    def __init__(
        self,
        runner: QueryRunnerProtocol,
        dialect: FullTextDialect = FullTextDialect.TIDB,
    ):
        """Initialize store.

        Args:
            runner: Executes parameterized queries.
            dialect: Full-text predicate flavour.
        """
        self._runner = runner
        self._dialect = dialect

    async def search(
        self,
        query_text: str,
        table: str,
        search_field: str,
        return_field: str,
        limit: int,
    ) -> list[RawRow]:
        """Full-text match against `search_field`."""
        sql = build_search_statement(table, search_field, return_field, self._dialect)
        rows = await self._runner.fetch_all(
            sql, {"query": sanitize_query(query_text), "limit": limit}
        )
        logger.debug(f"Lexical: {len(rows)} rows from '{table}'")
        return rows

    async def aclose(self) -> None:
        await self._runner.aclose()


class SqlAlchemyQueryRunner:
    """Runs parameterized queries on a pooled SQLAlchemy async engine."""

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def fetch_all(self, sql: str, params: dict[str, Any]) -> list[RawRow]:
        try:
            # Connection goes back to the pool on error and on cancellation.
            async with self._engine.connect() as conn:
                result = await conn.execute(text(sql), params)
                return [dict(row) for row in result.mappings()]
        except PoolTimeoutError as e:
            logger.warning(f"Connection pool exhausted: {e}")
            raise BackendError(
                "timed out waiting for a database connection",
                BackendErrorKind.POOL_TIMEOUT,
            ) from e
        except DBAPIError as e:
            kind = (
                BackendErrorKind.TRANSPORT
                if e.connection_invalidated
                else BackendErrorKind.QUERY
            )
            logger.error(f"Database error: {e.orig}")
            raise BackendError(f"database error: {e.orig}", kind) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            raise BackendError(f"database error: {e}", BackendErrorKind.QUERY) from e
        except OSError as e:
            logger.error(f"Database unreachable: {e}")
            raise BackendError(
                f"database unreachable: {e}", BackendErrorKind.TRANSPORT
            ) from e

    async def aclose(self) -> None:
        await self._engine.dispose()


def create_query_runner(
    connection: DatabaseConnection,
    pool_size: int = 5,
    pool_timeout: float = 10.0,
) -> SqlAlchemyQueryRunner:
    """Create a TLS connection pool for a MySQL-compatible database.

    Raises:
        ConfigError: If the root CA cannot be loaded.
    """
    try:
        ssl_context = ssl.create_default_context(cafile=str(connection.ssl_ca))
    except (OSError, ssl.SSLError) as e:
        raise ConfigError(f"Failed to load TLS root CA {connection.ssl_ca}: {e}") from e

    url = URL.create(
        "mysql+aiomysql",
        username=connection.username,
        password=connection.password,
        host=connection.host,
        port=connection.port,
        database=connection.database,
        query={"charset": "utf8mb4"},
    )

    logger.info(f"Creating connection pool for {connection.host}:{connection.port}...")
    engine = create_async_engine(
        url,
        connect_args={"ssl": ssl_context},
        pool_size=pool_size,
        max_overflow=0,
        pool_timeout=pool_timeout,
        pool_pre_ping=True,
        pool_recycle=300,
    )
    return SqlAlchemyQueryRunner(engine)
