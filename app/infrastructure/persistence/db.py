"""Database setup helpers (SQLAlchemy engine/session)."""
import math
import os
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

# Load environment variables from backend/.env
backend_dir = Path(__file__).parent.parent.parent.parent
env_file = backend_dir / ".env"
load_dotenv(env_file)

# Build DATABASE_URL from individual variables or use provided URL
DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    # Construct from individual variables
    db_user = os.getenv("DATABASE_USER", "root")
    db_password = os.getenv("DATABASE_PASSWORD", "")
    db_host = os.getenv("DATABASE_HOST", "localhost")
    db_port = os.getenv("DATABASE_PORT", "3306")
    db_name = os.getenv("DATABASE_NAME", "venues")

    DATABASE_URL = f"mysql+pymysql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


def _safe_math(fn):
    def wrapper(*args):
        if any(a is None for a in args):
            return None
        return fn(*(float(a) for a in args))
    return wrapper


def register_sqlite_functions(dbapi_conn, connection_record=None):
    """Expose the trig functions used by the haversine expression to SQLite.

    MySQL and PostgreSQL ship these natively; SQLite builds often do not.
    """
    dbapi_conn.create_function("radians", 1, _safe_math(math.radians))
    dbapi_conn.create_function("sin", 1, _safe_math(math.sin))
    dbapi_conn.create_function("cos", 1, _safe_math(math.cos))
    dbapi_conn.create_function("asin", 1, _safe_math(lambda x: math.asin(max(-1.0, min(1.0, x)))))
    dbapi_conn.create_function("sqrt", 1, _safe_math(lambda x: math.sqrt(max(0.0, x))))
    dbapi_conn.create_function("power", 2, _safe_math(math.pow))


def create_db_engine(url: str, **kwargs):
    """Create an engine, wiring SQLite math support when needed."""
    engine = create_engine(url, future=True, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", register_sqlite_functions)
    return engine


engine = create_db_engine(DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
    """FastAPI-style dependency to provide a DB session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
