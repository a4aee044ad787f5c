from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from bookingpro.core.config import settings


def build_engine(database_url: str, connect_timeout: int | None = None) -> Engine:
    """Create an engine with backend-specific connect args."""
    timeout = connect_timeout or settings.DB_CONNECT_TIMEOUT_SECONDS
    backend = make_url(database_url).get_backend_name()
    connect_args: dict = {}
    if backend.startswith("postgresql"):
        connect_args["options"] = "-c timezone=utc"
        connect_args["connect_timeout"] = timeout
    elif backend == "sqlite":
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
