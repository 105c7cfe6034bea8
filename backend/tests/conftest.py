import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import meatup.models  # noqa: F401
from meatup.db.base import Base
from meatup.main import create_app
from meatup.services.task_queue import InlineTaskQueue
from tests.factories import FakeEmailSender, FakeSmsSender, make_settings


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
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
def settings():
    return make_settings()


@pytest.fixture
def sms_sender():
    return FakeSmsSender()


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture
def task_queue(session_factory):
    return InlineTaskQueue(session_factory)


@pytest.fixture
def app(settings, session_factory, sms_sender, email_sender, task_queue):
    return create_app(
        settings=settings,
        session_factory=session_factory,
        sms_sender=sms_sender,
        email_sender=email_sender,
        task_queue=task_queue,
    )


@pytest.fixture
def client(app):
    return TestClient(app)
