import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from hospital_backend.core import config


logger = logging.getLogger(__name__)

Base = declarative_base()

WRITE_TRANSACTION = {'begin_immediate': True}


class DatabasePool:
    """Process-wide pool of database connections.

    Created unconfigured, brought up with ``init()`` at service start and torn
    down with ``shutdown()`` at stop. Each logical operation borrows one
    session for its whole transaction through ``acquire()`` and hands it back
    through ``release()``.

    On SQLite only transactions opened with ``begin_write`` take the database
    write lock at BEGIN; read sessions use a deferred BEGIN and do not queue
    behind writers.
    """

    def __init__(self, database_url: str | None = None, **engine_options) -> None:
        self.database_url = database_url or config.DATABASE_URL
        self.engine_options = engine_options
        self.engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        self._schema_lock = Lock()
        self._appointment_schema_checked = False

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith('sqlite')

    @property
    def is_initialized(self) -> bool:
        return self.engine is not None

    def init(self, create_tables: bool = True) -> None:
        if self.engine is not None:
            return

        self.engine = create_engine(self.database_url, **self._build_engine_options())
        if self.is_sqlite:
            _use_immediate_transactions(self.engine)

        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

        if create_tables:
            # Registers every mapped table on Base.metadata.
            from hospital_backend.models import appointment, availability, client, doctor  # noqa: F401

            Base.metadata.create_all(bind=self.engine)
            self.ensure_appointment_schema()

        logger.info('Database pool initialized for %s', self.engine.url.render_as_string(hide_password=True))

    def shutdown(self) -> None:
        if self.engine is None:
            return

        self.engine.dispose()
        self.engine = None
        self._session_factory = None
        self._appointment_schema_checked = False
        logger.info('Database pool shut down.')

    def acquire(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError('Database pool is not initialized. Call init() first.')
        return self._session_factory()

    def release(self, session: Session) -> None:
        session.close()

    @contextmanager
    def session(self) -> Iterator[Session]:
        session = self.acquire()
        try:
            yield session
        finally:
            self.release(session)

    def ensure_appointment_schema(self) -> None:
        if self._appointment_schema_checked:
            return

        with self._schema_lock:
            if self._appointment_schema_checked:
                return

            inspector = inspect(self.engine)

            if 'appointments' not in inspector.get_table_names():
                self._appointment_schema_checked = True
                return

            from hospital_backend.models.appointment import Appointment

            existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
            migration_steps = [
                ('deleted_at', 'ALTER TABLE appointments ADD COLUMN deleted_at TIMESTAMP'),
            ]

            with self.engine.begin() as connection:
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        logger.info('Adding missing column appointments.%s', column_name)
                        connection.execute(text(statement))
                for index in Appointment.__table__.indexes:
                    index.create(connection, checkfirst=True)

            self._appointment_schema_checked = True

    def _build_engine_options(self) -> dict:
        options: dict = {'echo': config.DB_ECHO}
        if self.is_sqlite:
            options['connect_args'] = {'check_same_thread': False, 'timeout': config.DB_POOL_TIMEOUT}
        else:
            options.update(
                pool_pre_ping=True,
                pool_size=config.DB_POOL_SIZE,
                max_overflow=config.DB_MAX_OVERFLOW,
                pool_timeout=config.DB_POOL_TIMEOUT,
                pool_recycle=config.DB_POOL_RECYCLE,
            )
        options.update(self.engine_options)
        return options


def begin_write(session: Session) -> None:
    """Open the session's transaction as a write transaction.

    Must be called before the session touches the database. On SQLite the
    database write lock is taken at BEGIN; elsewhere this is a plain BEGIN and
    row locks do the work.
    """
    session.connection(execution_options=WRITE_TRANSACTION)


def _use_immediate_transactions(engine: Engine) -> None:
    # SQLite has no row locks; write transactions take the database write lock at BEGIN.
    @event.listens_for(engine, 'connect')
    def _disable_driver_transactions(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _begin(connection):
        if connection.get_execution_options().get('begin_immediate'):
            connection.exec_driver_sql('BEGIN IMMEDIATE')
        else:
            connection.exec_driver_sql('BEGIN')


pool = DatabasePool()


def get_pool() -> DatabasePool:
    return pool
