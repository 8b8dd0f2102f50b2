from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from facility_risk.core.config import settings


def build_engine(database_uri: str, echo: bool = False) -> Engine:
    if database_uri.startswith("sqlite"):
        # SQLite sessions are handed to worker threads by the on-demand path
        sqlite_engine = create_engine(
            database_uri,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

        # Let SQLAlchemy own BEGIN so SAVEPOINTs used by the upserter behave
        @event.listens_for(sqlite_engine, "connect")
        def _disable_pysqlite_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(sqlite_engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

        return sqlite_engine

    # PostgreSQL configuration with connection pooling
    return create_engine(
        database_uri,
        pool_size=10,
        max_overflow=20,
        pool_recycle=300,      # Recycle connections every 5 minutes
        pool_pre_ping=True,    # Validate connections before use
        pool_timeout=30,
        echo=echo,
    )


engine = build_engine(settings.SQLALCHEMY_DATABASE_URI, echo=settings.SQLALCHEMY_ECHO)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
