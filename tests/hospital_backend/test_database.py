import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import OperationalError

from hospital_backend.database import DatabasePool, begin_write
from hospital_backend.models.doctor import Doctor


def test_acquire_before_init_raises() -> None:
    pool = DatabasePool('sqlite://')

    with pytest.raises(RuntimeError):
        pool.acquire()


def test_init_and_shutdown_are_idempotent(tmp_path) -> None:
    pool = DatabasePool(f'sqlite:///{tmp_path / "lifecycle.db"}')

    pool.init()
    engine = pool.engine
    pool.init()
    assert pool.engine is engine
    assert pool.is_initialized

    pool.shutdown()
    pool.shutdown()
    assert not pool.is_initialized


def test_init_creates_scheduling_tables(pool) -> None:
    table_names = set(inspect(pool.engine).get_table_names())

    assert {'appointments', 'availability', 'clients', 'doctors'} <= table_names


def test_init_upgrades_legacy_appointments_table(tmp_path) -> None:
    database_url = f'sqlite:///{tmp_path / "legacy.db"}'
    legacy_engine = create_engine(database_url)
    with legacy_engine.begin() as connection:
        connection.execute(text(
            'CREATE TABLE appointments ('
            'appointment_id INTEGER PRIMARY KEY, client_id INTEGER NOT NULL, doctor_id INTEGER NOT NULL, '
            'appointment_time DATETIME NOT NULL, status VARCHAR(16) NOT NULL)'
        ))
    legacy_engine.dispose()

    pool = DatabasePool(database_url)
    pool.init()
    try:
        inspector = inspect(pool.engine)
        columns = {column['name'] for column in inspector.get_columns('appointments')}
        indexes = {index['name'] for index in inspector.get_indexes('appointments')}
    finally:
        pool.shutdown()

    assert 'deleted_at' in columns
    assert 'idx_appointments_doctor_time' in indexes


def test_schema_upgrade_is_idempotent_on_current_tables(pool) -> None:
    pool._appointment_schema_checked = False

    pool.ensure_appointment_schema()

    indexes = [index['name'] for index in inspect(pool.engine).get_indexes('appointments')]
    assert indexes.count('idx_appointments_doctor_time') == 1


def test_sqlite_reads_do_not_queue_behind_an_open_write_transaction(tmp_path) -> None:
    pool = DatabasePool(
        f'sqlite:///{tmp_path / "locks.db"}',
        connect_args={'check_same_thread': False, 'timeout': 1},
    )
    pool.init()
    writer = pool.acquire()
    other_writer = pool.acquire()
    try:
        writer.begin()
        begin_write(writer)
        writer.add(Doctor(first_name='John', last_name='Doe', specialization='CARDIOLOGY'))
        writer.flush()

        with pool.session() as reader:
            assert reader.query(Doctor).count() == 0

        other_writer.begin()
        with pytest.raises(OperationalError):
            begin_write(other_writer)
    finally:
        pool.release(other_writer)
        writer.rollback()
        pool.release(writer)
        pool.shutdown()


def test_session_context_releases_on_error(pool) -> None:
    released = []
    original_release = pool.release

    def tracking_release(session):
        released.append(session)
        original_release(session)

    pool.release = tracking_release

    with pytest.raises(ValueError):
        with pool.session():
            raise ValueError('boom')

    assert len(released) == 1
