# ledger_sync/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from ledger_sync.config import settings


def normalize_database_url(url: str) -> str:
    # Hosted PostgreSQL often hands out postgres://, SQLAlchemy needs postgresql://
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def enable_sqlite_savepoints(engine):
    """Let SQLAlchemy own BEGIN on pysqlite so that SAVEPOINT works.

    Batch items are isolated with Session.begin_nested(); the stock pysqlite
    driver defers BEGIN on its own and breaks nested transactions.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def build_engine(url: str):
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})
        return enable_sqlite_savepoints(engine)
    return create_engine(url, pool_pre_ping=True)


SQLALCHEMY_DATABASE_URL = normalize_database_url(settings.DATABASE_URL)

engine = build_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Register every model on Base.metadata before creating tables
    import ledger_sync.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
