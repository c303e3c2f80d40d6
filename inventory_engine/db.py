from contextlib import contextmanager
import os
import urllib.parse

from sqlalchemy import create_engine, false, text
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.pool import StaticPool

from inventory_engine.config import config, DB_URL_ENV


class Database:
    """Database connection manager for the Inventory Forecasting Engine."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Database, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the database connection if not already initialized."""
        if self._initialized:
            return

        self._engine = None
        self._session_factory = None
        self._session = None
        self._initialized = True

    def _build_connection_string(self):
        """Build the connection string from settings.ini."""
        engine = config.get('DATABASE', 'engine', 'postgresql')
        username = config.get('DATABASE', 'username', 'postgres')
        password = config.get('DATABASE', 'password', 'postgres')
        host = config.get('DATABASE', 'host', 'localhost')
        port = config.get('DATABASE', 'port', '5432')
        database = config.get('DATABASE', 'database', 'inventory')

        # URL encode the password to handle special characters
        password = urllib.parse.quote_plus(password)

        return f"{engine}://{username}:{password}@{host}:{port}/{database}"

    def initialize(self, connection_string=None):
        """Initialize database connection.

        Args:
            connection_string: Optional database connection string.
                              If not provided, the INVENTORY_ENGINE_DB_URL
                              environment variable or settings.ini is used.
        """
        if connection_string is None:
            connection_string = os.environ.get(DB_URL_ENV) or self._build_connection_string()

        echo = config.get_boolean('DATABASE', 'echo', False)

        if connection_string.startswith('sqlite'):
            engine_args = {'connect_args': {'check_same_thread': False}}
            # In-memory databases must share one connection across sessions
            if connection_string in ('sqlite://', 'sqlite:///:memory:'):
                engine_args['poolclass'] = StaticPool
        else:
            engine_args = {
                'pool_size': config.get_int('DATABASE', 'pool_size', 10),
                'max_overflow': config.get_int('DATABASE', 'max_overflow', 20),
                'pool_timeout': config.get_int('DATABASE', 'pool_timeout', 30),
                'pool_recycle': config.get_int('DATABASE', 'pool_recycle', 1800)
            }

        if self._session is not None:
            self._session.remove()
        if self._engine is not None:
            self._engine.dispose()

        self._engine = create_engine(connection_string, echo=echo, **engine_args)
        self._session_factory = sessionmaker(bind=self._engine)
        self._session = scoped_session(self._session_factory)

    def create_all_tables(self):
        """Create all tables defined in the models."""
        from inventory_engine.models import Base
        Base.metadata.create_all(self.engine)

    def drop_all_tables(self):
        """Drop all tables from the database."""
        from inventory_engine.models import Base
        Base.metadata.drop_all(self.engine)

    @property
    def session(self):
        """Get the current database session."""
        if self._session is None:
            self.initialize()
        return self._session

    @property
    def engine(self):
        """Get the database engine."""
        if self._engine is None:
            self.initialize()
        return self._engine

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations."""
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# Global database instance
db = Database()


@contextmanager
def session_scope():
    """Session scope context manager."""
    with db.session_scope() as session:
        yield session


def hold_write_lock(session, table):
    """Make this transaction the only writer on SQLite until it ends.

    SQLite has no row locks and ignores FOR UPDATE. Its database-wide write
    lock is taken by the first write statement of a transaction, so a no-op
    UPDATE fences any read that follows. Other backends are left alone;
    callers rely on with_for_update() there.
    """
    if session.get_bind().dialect.name == 'sqlite':
        key = next(iter(table.primary_key.columns))
        session.execute(table.update().where(false()).values({key.name: key}))


def lock_table(session, table):
    """Serialize writers of a whole table until the transaction ends."""
    if session.get_bind().dialect.name == 'postgresql':
        session.execute(text(f"LOCK TABLE {table.name} IN SHARE ROW EXCLUSIVE MODE"))
    else:
        hold_write_lock(session, table)
