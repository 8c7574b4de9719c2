"""Single MySQL connection bound to the active environment.

The session is the only holder of a live connection in the process. The
environment registry re-binds it on every switch; tools reach the database
exclusively through ``execute`` and ``query``.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Sequence

import aiomysql

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionParams:
    """Connection parameters for one environment."""

    host: str
    port: int = 3306
    user: str = ""
    password: str = field(default="", repr=False)
    database: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.host) and bool(self.user)


@dataclass
class StatementResult:
    """Outcome of a statement: affected rows, generated id and any result set."""

    affected_rows: int = 0
    last_insert_id: Optional[int] = None
    rows: list[dict[str, Any]] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)


def quote_identifier(name: str) -> str:
    """Backtick-quote a MySQL identifier, doubling embedded backticks."""
    return "`" + name.replace("`", "``") + "`"


class MySQLSession:
    """Owns the one open connection for the active environment.

    - No pooling, no retries: failures surface to the caller immediately
    - Lazily reconnects with the bound parameters if the connection was closed
    - ``use_database`` persists across reconnects until the next ``configure``
    """

    def __init__(self):
        self._conn: Optional[aiomysql.Connection] = None
        self._params: Optional[ConnectionParams] = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None and not self._conn.closed

    @property
    def params(self) -> Optional[ConnectionParams]:
        return self._params

    def configure(self, params: ConnectionParams):
        """Bind the session to new parameters. Does not connect."""
        self._params = params

    async def connect(self) -> aiomysql.Connection:
        """Open and health-check a connection with the bound parameters."""
        if self._params is None:
            raise RuntimeError("Session not configured. Call configure() first.")

        params = self._params
        conn = await aiomysql.connect(
            host=params.host,
            port=params.port,
            user=params.user,
            password=params.password,
            db=params.database,
            autocommit=True,
            cursorclass=aiomysql.DictCursor,
        )
        try:
            await conn.ping(reconnect=False)
        except Exception:
            conn.close()
            raise
        self._conn = conn
        logger.info(f"Connected to MySQL at {params.host}:{params.port}")
        return conn

    async def close(self):
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        try:
            await conn.ensure_closed()
        except Exception as e:
            # The server may already have dropped the socket
            logger.warning(f"Error while closing MySQL connection: {e}")
            conn.close()
        logger.info("MySQL connection closed")

    async def _connection(self) -> aiomysql.Connection:
        if not self.is_open:
            return await self.connect()
        return self._conn

    async def execute(self, sql: str, args: Sequence[Any] = None) -> StatementResult:
        """Run a statement, returning affected rows and the generated id."""
        conn = await self._connection()
        async with conn.cursor() as cur:
            affected = await cur.execute(sql, args)
            return StatementResult(
                affected_rows=affected if affected is not None else cur.rowcount,
                last_insert_id=cur.lastrowid or None,
            )

    async def query(self, sql: str, args: Sequence[Any] = None) -> StatementResult:
        """Run a statement and fetch its result set with column names."""
        conn = await self._connection()
        async with conn.cursor() as cur:
            await cur.execute(sql, args)
            if cur.description:
                rows = await cur.fetchall()
                return StatementResult(
                    affected_rows=cur.rowcount,
                    rows=[dict(row) for row in rows],
                    columns=[col[0] for col in cur.description],
                )
            return StatementResult(
                affected_rows=cur.rowcount,
                last_insert_id=cur.lastrowid or None,
            )

    async def use_database(self, database: str):
        """Switch the default database and keep it for later reconnects."""
        await self.execute(f"USE {quote_identifier(database)}")
        self._params = replace(self._params, database=database)
