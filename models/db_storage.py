from contextlib import contextmanager
import logging
import math
from os import getenv

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool
from dotenv import load_dotenv

from models.base_model import Base
from models.user import User
from models.refresh_token import RefreshToken
from utils.exceptions import StoreUnavailable

load_dotenv()
logger = logging.getLogger(__name__)

# Map model names for easy querying
classes = {
    "User": User,
    "RefreshToken": RefreshToken,
}

DEFAULT_TIMEOUT = 5.0


def _engine_options(url: str, timeout: float) -> dict:
    """Per-backend engine options so that no store call can block forever."""
    options = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        options["connect_args"] = {"timeout": timeout, "check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout gets an empty database
            options["poolclass"] = StaticPool
        return options

    options["pool_timeout"] = timeout
    if url.startswith("postgresql"):
        options["connect_args"] = {
            "connect_timeout": max(1, math.ceil(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }
    return options


class DBStorage:
    __engine = None
    __session = None

    def __init__(self, database_url=None, timeout=None):
        """Remember connection settings; the engine is built in reload()"""
        self.database_url = database_url or getenv("DATABASE_URL", "sqlite:///auth.db")
        self.timeout = float(timeout if timeout is not None else getenv("STORE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT))

    def reload(self, database_url=None, timeout=None, echo=False):
        """Create engine and tables, start a fresh scoped session"""
        if database_url:
            self.database_url = database_url
        if timeout is not None:
            self.timeout = float(timeout)
        if self.__session is not None:
            self.__session.remove()
        if self.__engine is not None:
            self.__engine.dispose()

        self.__engine = create_engine(self.database_url, echo=echo, **_engine_options(self.database_url, self.timeout))
        # Enable SQLite foreign keys (needed for ON DELETE CASCADE)
        if self.__engine.url.get_backend_name() == "sqlite":
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        with self.guard():
            Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        self.__session = scoped_session(session_factory)

    @contextmanager
    def guard(self):
        """
        Turn store outages (timeouts, dropped connections) into StoreUnavailable.
        Anything else propagates unchanged.
        """
        try:
            yield
        except (OperationalError, PoolTimeoutError) as exc:
            logger.error("credential store unavailable: %s", exc.__class__.__name__)
            self.rollback()
            raise StoreUnavailable() from exc

    def query(self, cls):
        """Start a query on a model class"""
        return self.__session.query(cls)

    def new(self, obj):
        """Add object to session"""
        self.__session.add(obj)

    def save(self):
        """Commit session"""
        try:
            self.__session.commit()
        except SQLAlchemyError:
            self.__session.rollback()
            raise

    def rollback(self):
        if self.__session is not None:
            self.__session.rollback()

    def get(self, cls, id):
        """Fetch one object by class and ID"""
        if cls in classes.values():
            return self.__session.get(cls, id)
        return None

    def count(self, cls):
        """Count objects"""
        return self.__session.query(cls).count()

    def ping(self):
        """Cheap round trip used by the health check"""
        with self.guard():
            self.__session.execute(text("SELECT 1"))

    def close(self):
        """Remove session (for API teardown)"""
        if self.__session is not None:
            self.__session.remove()

    # expose the SQLAlchemy session for advanced querying (joins, filters, etc.)
    def get_session(self):
        return self.__session
