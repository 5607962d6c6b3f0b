import pytest

from llm.llm_client import LLMClient
from storage.memory_store import InMemoryTaskStore

TEST_TOKEN = "test-token"


class FakeProvider:
    """Scripted provider: returns (or raises) the queued responses in order."""

    def __init__(self, responses=None):
        self._responses = list(responses or [])
        self.calls = []

    def generate(self, *, messages, model=None, temperature=0.3, max_tokens=2048, timeout=60.0) -> str:
        self.calls.append({"messages": messages, "timeout": timeout, "max_tokens": max_tokens})
        if not self._responses:
            raise AssertionError("FakeProvider has no scripted response left")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_provider_factory():
    def _make(*responses):
        return FakeProvider(responses)
    return _make


@pytest.fixture
def llm_client_factory(fake_provider_factory):
    def _make(*responses):
        provider = fake_provider_factory(*responses)
        return LLMClient(provider=provider), provider
    return _make


@pytest.fixture
def store():
    return InMemoryTaskStore()


@pytest.fixture
def user(store):
    return store.add_user("Ada", "ada@example.com", token=TEST_TOKEN)
