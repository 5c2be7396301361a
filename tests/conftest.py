import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["VERIFICATION_MODE"] = "dummy"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENVIRONMENT"] = "development"
os.environ["UPLOAD_BASE_PATH"] = tempfile.mkdtemp(prefix="cosync-uploads-")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base, get_db
from core.dependencies import get_sms_provider, get_identity_provider, get_storage_provider
from core.security import create_session_token
from models.user import User
from providers.sms_provider import DummySmsProvider
from providers.identity_provider import DummyIdentityProvider
from providers.storage_provider import LocalStorageProvider
import models.sms_code
import models.attempt_tracker
import models.identity_verification
import models.post
import models.conversation


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
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
def sms_provider():
    return DummySmsProvider()


@pytest.fixture
def identity_provider():
    return DummyIdentityProvider()


@pytest.fixture
def storage_provider(tmp_path):
    return LocalStorageProvider(base_path=str(tmp_path), public_base_url="http://testserver", secret="test-secret")


@pytest.fixture
def client(session_factory, sms_provider, identity_provider, storage_provider):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sms_provider] = lambda: sms_provider
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_storage_provider] = lambda: storage_provider

    # no context manager: the lifespan (real providers, cleanup thread) stays off
    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(phone=None, nickname=None, verified=False, gender=0, open_id=None):
        counter["n"] += 1
        n = counter["n"]
        phone = phone if phone is not None else f"1390000{n:04d}"
        user = User(
            open_id=open_id or f"phone:{phone}",
            phone=phone or None,
            nickname=nickname or f"tester{n}",
            login_method="phone",
            role="user",
            is_verified=verified,
            gender=gender,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_session_token(user.open_id, user.nickname)}"}

    return _auth_headers
