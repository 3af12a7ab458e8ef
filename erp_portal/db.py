from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from erp_portal.config import settings


def build_engine(url: str, **kwargs) -> Engine:
    if url.startswith('sqlite'):
        connect_args = kwargs.pop('connect_args', {})
        connect_args.setdefault('check_same_thread', False)
        engine = create_engine(url, connect_args=connect_args, **kwargs)

        @event.listens_for(engine, 'connect')
        def _sqlite_connect(dbapi_connection, _connection_record):
            # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly.
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

        @event.listens_for(engine, 'begin')
        def _sqlite_begin(connection):
            connection.exec_driver_sql('BEGIN')

        return engine

    kwargs.setdefault('pool_pre_ping', True)
    kwargs.setdefault('pool_recycle', 3600)
    return create_engine(url, **kwargs)


engine = build_engine(settings.database_url_normalized, echo=settings.debug)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
