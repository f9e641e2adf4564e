import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('BCRYPT_ROUNDS', '4')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backend.database import Base, get_db  # noqa: E402
from backend.main import app  # noqa: E402
from backend.models.student import Student  # noqa: E402
from backend.models.user import User  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=[User.__table__, Student.__table__])
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=[Student.__table__, User.__table__])
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def register_user(client):
    def _register(email: str = 'owner@example.com', password: str = 'correct-horse', full_name: str = 'Olive Owner') -> dict:
        response = client.post('/api/register', json={'fullName': full_name, 'email': email, 'password': password})
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def owner(register_user) -> dict:
    return register_user()


@pytest.fixture
def other_user(register_user) -> dict:
    return register_user(email='other@example.com', full_name='Oscar Other')
