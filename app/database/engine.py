from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from app.config import Settings, get_settings


app_settings: Settings = get_settings()

SQLITE_BUSY_TIMEOUT_SECONDS = 30


def is_sqlite_url(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _is_sqlite_memory(url: str) -> bool:
    db_url = make_url(url)
    if db_url.database in (None, "", ":memory:"):
        return True
    return db_url.query.get("mode") == "memory"


def build_engine(url: str) -> Engine:
    connect_args = {}
    engine_kwargs: dict[str, object] = dict(pool_pre_ping=True)
    sqlite = is_sqlite_url(url)
    memory = sqlite and _is_sqlite_memory(url)
    if sqlite:
        connect_args = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SECONDS}
        if memory:
            engine_kwargs.update(poolclass=StaticPool)

    new_engine = create_engine(url, connect_args=connect_args, **engine_kwargs)

    if sqlite:
        @event.listens_for(new_engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_SECONDS * 1000}")
                if not memory:
                    cursor.execute("PRAGMA journal_mode=WAL")
                    cursor.execute("PRAGMA synchronous=NORMAL")
            finally:
                cursor.close()

    return new_engine


engine = build_engine(app_settings.DATABASE_URL)
