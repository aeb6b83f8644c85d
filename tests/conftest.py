# tests/conftest.py
import os
import tempfile
from datetime import date, timedelta

os.environ["SKIP_DB_INIT"] = "1"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from lab_api.db import Base, get_db, make_engine
from lab_api.models import Booking, Laboratory
from lab_api.main import app


@pytest.fixture
def future_day():
    return (date.today() + timedelta(days=7)).isoformat()


@pytest.fixture(scope="function")
def db_engine():
    # temp DB
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    engine = make_engine(f"sqlite:///{path}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()
        os.remove(path)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def test_db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(test_db_session):
    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# —— Factories ——
@pytest.fixture
def make_laboratory(test_db_session):
    def _make_laboratory(name="Chemistry Lab", description="Wet lab", capacity=24):
        lab = Laboratory(name=name, description=description, capacity=capacity)
        test_db_session.add(lab)
        test_db_session.commit()
        return lab
    return _make_laboratory


@pytest.fixture
def make_booking(test_db_session, make_laboratory, future_day):
    def _make_booking(laboratory_id=None, day=None, start="09:00:00", end="10:00:00", status="active"):
        if laboratory_id is None:
            laboratory_id = make_laboratory().id
        b = Booking(
            laboratory_id=laboratory_id,
            date=day or future_day,
            start_time=start,
            end_time=end,
            status=status,
        )
        test_db_session.add(b)
        test_db_session.commit()
        return b
    return _make_booking
