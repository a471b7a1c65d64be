from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_forecast.config import config
from ledger_forecast.exceptions import DatabaseError
from ledger_forecast.logging_setup import get_logger

logger = get_logger(__name__)


class Database:
    """Database connection manager for the ledger store.

    One instance per store; services receive sessions from it rather than
    reaching for a module-level handle.
    """

    def __init__(self, connection_string=None, echo=None):
        """Initialize the database connection.

        Args:
            connection_string: Optional SQLAlchemy URL. If not provided,
                               the configured DATABASE url is used.
            echo: Optional override for SQL echo
        """
        if connection_string is None:
            connection_string = config.get_db_url()
        if echo is None:
            echo = config.get_boolean('DATABASE', 'echo', False)

        self.connection_string = connection_string
        try:
            self._engine = self._create_engine(connection_string, echo)
        except SQLAlchemyError as e:
            logger.error(f"Could not create engine: {str(e)}")
            raise DatabaseError(
                f"Database initialization failed: {str(e)}",
                details={'url': connection_string}
            )
        self._session_factory = sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False
        )

    @staticmethod
    def _create_engine(connection_string, echo):
        if not connection_string.startswith('sqlite'):
            return create_engine(
                connection_string,
                echo=echo,
                pool_size=config.get_int('DATABASE', 'pool_size', 5),
                max_overflow=config.get_int('DATABASE', 'max_overflow', 10),
                pool_timeout=config.get_int('DATABASE', 'pool_timeout', 30),
                pool_recycle=config.get_int('DATABASE', 'pool_recycle', 1800),
                pool_pre_ping=True
            )

        kwargs = {'connect_args': {'check_same_thread': False}}
        in_memory = connection_string in ('sqlite://', 'sqlite:///:memory:')
        if in_memory:
            # A single shared connection keeps the in-memory database alive
            kwargs['poolclass'] = StaticPool

        engine = create_engine(connection_string, echo=echo, **kwargs)

        @event.listens_for(engine, 'connect')
        def _on_connect(dbapi_connection, connection_record):
            # Let SQLAlchemy own BEGIN so savepoints behave
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

        @event.listens_for(engine, 'begin')
        def _on_begin(conn):
            # Writers for the same store serialize on the database lock
            conn.exec_driver_sql('BEGIN IMMEDIATE')

        return engine

    def create_all_tables(self):
        """Create all tables defined in the models."""
        from ledger_forecast.models import Base
        Base.metadata.create_all(self._engine)
        logger.info(f"Ledger tables ready on {self._engine.url.render_as_string(hide_password=True)}")

    def drop_all_tables(self):
        """Drop all tables from the database."""
        from ledger_forecast.models import Base
        Base.metadata.drop_all(self._engine)

    @property
    def engine(self):
        """Get the database engine."""
        return self._engine

    def session(self):
        """Open a new session bound to this database."""
        return self._session_factory()

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

    def dispose(self):
        """Release pooled connections."""
        self._engine.dispose()
