from types import SimpleNamespace

import pytest

from app.services.spaces_client import SpacesApiError
from fakes import FakeClock, FakeSpacesClient


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_client() -> FakeSpacesClient:
    return FakeSpacesClient()


@pytest.fixture()
def boom() -> SpacesApiError:
    return SpacesApiError("boom", 500)


@pytest.fixture()
def slack_stub():
    sent = []

    def chat_postMessage(**kwargs):
        sent.append(kwargs)
        return {"ok": True}

    return SimpleNamespace(chat_postMessage=chat_postMessage, sent=sent)
