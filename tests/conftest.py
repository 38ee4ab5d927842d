"""
Pytest configuration and fixtures for RAI tests.

This module provides shared fixtures for testing database models, repositories,
the AI gateway and the API.
"""

import os

# Point the application at SQLite before any rai module builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_FILE_ENABLED", "false")

from contextlib import contextmanager
from typing import Generator, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from rai.db.repositories import ConversationRepository, MessageRepository, UserRepository
from rai.gateway import AIGateway
from rai.models.db import Base, Conversation, MessageType, Sender, User
from rai.providers import (
    ChatMessage,
    ImageProvider,
    ImageResult,
    LLMProvider,
    LLMResponse,
    TranscriptionProvider,
)

TEST_PASSWORD = "secret-password"


class FakeProvider(LLMProvider):
    """In-memory text provider recording every request."""

    def __init__(
        self,
        name: str = "fake",
        model: str = "fake-model",
        reply: str = "Hello from the fake provider",
        error: Optional[Exception] = None,
    ):
        self._name = name
        self._model = model
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def model_name(self) -> str:
        return self._model

    def complete(
        self,
        system_prompt: str,
        messages: list[ChatMessage],
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "messages": list(messages),
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if self.error is not None:
            raise self.error
        return LLMResponse(
            content=self.reply,
            prompt_tokens=12,
            completion_tokens=30,
            total_tokens=42,
            finish_reason="stop",
            model=self._model,
            duration_ms=125.0,
        )


class FakeImageProvider(ImageProvider):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.prompts: list[str] = []

    @property
    def provider_name(self) -> str:
        return "fake-images"

    def generate_image(self, prompt: str, size: Optional[str] = None) -> ImageResult:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return ImageResult(
            url="https://images.example.com/generated.png",
            model="fake-image-model",
            prompt=prompt,
            size=size or "1024x1024",
            duration_ms=900.0,
        )


class FakeTranscriber(TranscriptionProvider):
    def __init__(self, transcript: str = "what is the weather like today"):
        self.transcript = transcript
        self.received: list[bytes] = []

    @property
    def provider_name(self) -> str:
        return "fake-stt"

    def transcribe(self, audio: bytes, filename: str = "audio.webm") -> str:
        self.received.append(audio)
        return self.transcript


@pytest.fixture(scope="session")
def test_engine():
    """Create a test database engine using SQLite in-memory."""
    from sqlalchemy import JSON, event
    from sqlalchemy.dialects import postgresql

    # Replace JSONB with JSON for SQLite
    @event.listens_for(Base.metadata, "before_create")
    def _set_json_type(target, connection, **kw):
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, postgresql.JSONB):
                    column.type = JSON()

    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={
            "check_same_thread": False
        },  # Allow cross-thread access for TestClient
        poolclass=StaticPool,
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs work with pysqlite
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """
    Create a new database session for a test.

    Each test runs inside an outer transaction that is rolled back after
    the test; commits and rollbacks in code under test only touch a
    savepoint.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def image_provider() -> FakeImageProvider:
    return FakeImageProvider()


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def gateway(
    fake_provider: FakeProvider,
    image_provider: FakeImageProvider,
    transcriber: FakeTranscriber,
) -> AIGateway:
    """Gateway wired to in-memory providers."""
    return AIGateway(
        text_providers=[fake_provider],
        image_provider=image_provider,
        transcriber=transcriber,
    )


@pytest.fixture
def api_client(db_session: Session, gateway: AIGateway):
    """Create a test client for FastAPI with database dependency override."""
    from unittest.mock import patch

    from fastapi.testclient import TestClient

    from rai.api.app import app
    from rai.db.connection import get_db

    # Override the get_db dependency to use test database
    def override_get_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    @contextmanager
    def override_db_session():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    # Disable lifespan startup checks for testing
    with patch("rai.api.app.run_all_startup_checks"), patch(
        "rai.api.routes.realtime.db_session", override_db_session
    ), TestClient(app) as client:
        client.app.state.gateway = gateway
        yield client

    # Clean up
    app.dependency_overrides.clear()
    del app.state.gateway


def auth_headers(user: User) -> dict[str, str]:
    """Headers identifying user as the acting user."""
    return {"X-User-Id": str(user.id)}


def make_user(session: Session, username: str, **kwargs) -> User:
    user = UserRepository(session).register(
        username, f"{username}@example.com", TEST_PASSWORD, **kwargs
    )
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def sample_user(db_session: Session) -> User:
    """Create a sample user on the free plan."""
    return make_user(db_session, "alice", first_name="Alice")


@pytest.fixture
def other_user(db_session: Session) -> User:
    """Create a second user for sharing and access tests."""
    return make_user(db_session, "bob", first_name="Bob")


@pytest.fixture
def sample_conversation(db_session: Session, sample_user: User) -> Conversation:
    """Create a conversation with one user/AI exchange."""
    conversation = ConversationRepository(db_session).create_for_user(
        sample_user.id, "Tell me about the solar system"
    )
    messages = MessageRepository(db_session)
    messages.create_message(
        conversation,
        Sender.USER,
        "Tell me about the solar system",
        author_id=sample_user.id,
    )
    messages.create_message(
        conversation,
        Sender.AI,
        "The solar system has eight planets.",
        message_type=MessageType.TEXT,
        extra_data={"model": "fake-model", "provider": "fake", "tokens": 42},
    )
    conversation.touch("The solar system has eight planets.")
    db_session.commit()
    db_session.refresh(conversation)
    return conversation