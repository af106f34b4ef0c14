"""Unit tests for the SQL full-text store."""

from pathlib import Path

import pytest
from fakes import FakeQueryRunner
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from agentic_search.config.search_config import DatabaseConnection, FullTextDialect
from agentic_search.errors import BackendError, BackendErrorKind, ConfigError
from agentic_search.infrastructure.lexical_stores.sql_store import (
    SqlAlchemyQueryRunner,
    SqlLexicalStore,
    build_search_statement,
    create_query_runner,
    quote_identifier,
    sanitize_query,
)


class TestStatementBuilding:
    """Tests for identifier quoting and statement text."""

    def test_tidb_statement(self):
        sql = build_search_statement("articles", "content", "*", FullTextDialect.TIDB)

        assert sql == (
            "SELECT * FROM `articles` WHERE fts_match_word(:query, `content`) LIMIT :limit"
        )

    def test_mysql_statement_with_columns(self):
        sql = build_search_statement("kb.articles", "body", "title, body", FullTextDialect.MYSQL)

        assert sql == (
            "SELECT `title`, `body` FROM `kb`.`articles` "
            "WHERE MATCH(`body`) AGAINST (:query IN NATURAL LANGUAGE MODE) LIMIT :limit"
        )

    @pytest.mark.parametrize("name", ["articles; DROP TABLE users", "a`b", "1abc", "", "a..b"])
    def test_rejects_unsafe_identifiers(self, name):
        """Test identifiers that could alter the statement are rejected."""
        with pytest.raises(ConfigError):
            quote_identifier(name)

    def test_rejects_empty_return_field(self):
        with pytest.raises(ConfigError):
            build_search_statement("articles", "content", " , ")

    def test_sanitize_query(self):
        """Test control characters are dropped and whitespace kept."""
        assert sanitize_query("refund\x00 policy\x1b now") == "refund policy now"
        assert sanitize_query("line one\n\tline two") == "line one\n\tline two"
        assert sanitize_query("") == ""

    def test_whitespace_only_query_unchanged(self):
        assert sanitize_query("   ") == "   "


class TestSqlLexicalStore:
    """Tests for query parameterization."""

    @pytest.mark.asyncio
    async def test_query_is_bound_not_interpolated(self):
        """Test the query text only travels as a bind parameter."""
        runner = FakeQueryRunner(rows=[{"content": "alpha"}])
        store = SqlLexicalStore(runner, FullTextDialect.TIDB)
        hostile = "x' OR 1=1; DROP TABLE articles; --"

        rows = await store.search(hostile, "articles", "content", "content", 5)

        sql, params = runner.calls[0]
        assert rows == [{"content": "alpha"}]
        assert hostile not in sql
        assert "DROP" not in sql
        assert params == {"query": hostile, "limit": 5}

    @pytest.mark.asyncio
    async def test_aclose_closes_runner(self):
        runner = FakeQueryRunner()

        await SqlLexicalStore(runner).aclose()

        assert runner.closed is True


class _Result:
    def __init__(self, rows):
        self._rows = rows

    def mappings(self):
        return self._rows


class _Connection:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.executed = []

    async def execute(self, statement, params):
        self.executed.append((str(statement), params))
        if self.error is not None:
            raise self.error
        return _Result(self.rows)


class _Engine:
    """Minimal AsyncEngine stand-in."""

    def __init__(self, connection=None, connect_error=None):
        self.connection = connection
        self.connect_error = connect_error
        self.released = 0
        self.disposed = False

    def connect(self):
        return self

    async def __aenter__(self):
        if self.connect_error is not None:
            raise self.connect_error
        return self.connection

    async def __aexit__(self, *exc_info):
        self.released += 1
        return False

    async def dispose(self):
        self.disposed = True


class TestSqlAlchemyQueryRunner:
    """Tests for execution and error mapping."""

    @pytest.mark.asyncio
    async def test_fetch_all(self):
        connection = _Connection(rows=[{"content": "alpha"}, {"content": "beta"}])
        engine = _Engine(connection=connection)
        runner = SqlAlchemyQueryRunner(engine)

        rows = await runner.fetch_all("SELECT 1 WHERE :query", {"query": "a", "limit": 2})

        assert rows == [{"content": "alpha"}, {"content": "beta"}]
        assert connection.executed == [("SELECT 1 WHERE :query", {"query": "a", "limit": 2})]
        assert engine.released == 1

    @pytest.mark.asyncio
    async def test_pool_timeout(self):
        """Test pool exhaustion maps to the pool_timeout sub-kind."""
        runner = SqlAlchemyQueryRunner(_Engine(connect_error=PoolTimeoutError("QueuePool limit reached")))

        with pytest.raises(BackendError) as exc_info:
            await runner.fetch_all("SELECT 1", {})

        assert exc_info.value.error_kind is BackendErrorKind.POOL_TIMEOUT
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_query_error_releases_connection(self):
        """Test a failing query maps to QUERY and returns the connection."""
        error = ProgrammingError("SELECT", {}, Exception("Can't find FULLTEXT index"))
        engine = _Engine(connection=_Connection(error=error))
        runner = SqlAlchemyQueryRunner(engine)

        with pytest.raises(BackendError) as exc_info:
            await runner.fetch_all("SELECT", {})

        assert exc_info.value.error_kind is BackendErrorKind.QUERY
        assert exc_info.value.retryable is False
        assert engine.released == 1

    @pytest.mark.asyncio
    async def test_lost_connection(self):
        error = OperationalError("SELECT", {}, Exception("server gone away"), connection_invalidated=True)
        runner = SqlAlchemyQueryRunner(_Engine(connection=_Connection(error=error)))

        with pytest.raises(BackendError) as exc_info:
            await runner.fetch_all("SELECT", {})

        assert exc_info.value.error_kind is BackendErrorKind.TRANSPORT

    @pytest.mark.asyncio
    async def test_aclose_disposes_engine(self):
        engine = _Engine()

        await SqlAlchemyQueryRunner(engine).aclose()

        assert engine.disposed is True


class TestCreateQueryRunner:

    def test_missing_ca_file(self, tmp_path: Path):
        """Test an unreadable root CA is a startup ConfigError."""
        connection = DatabaseConnection(
            username="u",
            password="p",
            host="db.test",
            port=4000,
            database="kb",
            ssl_ca=tmp_path / "missing.pem",
        )

        with pytest.raises(ConfigError):
            create_query_runner(connection)
