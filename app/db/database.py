from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base

from app.core.config import settings

IS_SQLITE = make_url(settings.database_url).get_backend_name() == "sqlite"

# Sessions are used from the threadpool, so SQLite must allow cross-thread use
connect_args = {"check_same_thread": False} if IS_SQLITE else {}
engine = create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)

if IS_SQLITE:
    # Material deletes rely on ON DELETE CASCADE, which SQLite ignores by default
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Request-scoped session; closed when the response is sent."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
