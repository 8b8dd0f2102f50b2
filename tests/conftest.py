import pytest
from sqlalchemy.orm import sessionmaker

import facility_risk.focus_areas.models  # noqa: F401
import facility_risk.models  # noqa: F401
from facility_risk.db.base import Base
from facility_risk.db.session import build_engine


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so worker threads each get their own connection."""
    engine = build_engine(f"sqlite:///{tmp_path / 'facility_risk_test.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
