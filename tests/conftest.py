from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from kasbot.app import create_app
from kasbot.config import Settings
from kasbot.dialog import SupportAgent
from kasbot.knowledge.knowledge_store import KnowledgeStore
from kasbot.resource_loader import KnowledgeLoader

KNOWLEDGE_FILE = Path(__file__).resolve().parents[1] / "resources" / "knowledge.json"


@pytest.fixture
def knowledge_path():
    return KNOWLEDGE_FILE


@pytest.fixture
def snapshot(knowledge_path):
    return KnowledgeLoader(knowledge_path).load()


@pytest.fixture
def agent(snapshot):
    return SupportAgent(lambda: snapshot)


@pytest.fixture
def settings(knowledge_path):
    return Settings(
        knowledge_path=knowledge_path,
        allowed_origins=("https://egy-tronix.com", "https://www.egy-tronix.com"),
        scrape_enabled=False,
        refresh_interval_hours=6.0,
        scrape_timeout=5.0,
        scrape_user_agent="KASBot/test",
        contact_url="",
        error_status_code=200,
        strip_emoji=False,
        max_spec_bullets=8,
        log_level="INFO",
    )


@pytest.fixture
def make_client(settings):
    """Build a TestClient for an isolated app; keyword overrides patch Settings."""
    clients = []

    def _make(**overrides):
        app_settings = replace(settings, **overrides)
        store = KnowledgeStore(KnowledgeLoader(app_settings.knowledge_path))
        store.load()
        client = TestClient(create_app(app_settings, store))
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()
