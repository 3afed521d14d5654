"""Shared fixtures: a scripted text provider, an in-memory store, a fixed clock."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import pytest

from mindful.analysis.client import AnalysisClient
from mindful.config import MindfulConfig
from mindful.errors import ProviderError
from mindful.journal.services import JournalService
from mindful.journal.store import JsonJournalStore


class FakeProvider:
    """TextProvider double that replays scripted responses per call label.

    A label is matched exactly first, then by prefix (so ``"theme "``
    covers every theme explanation). The last scripted response for a
    label is reused once the queue is down to it. Dicts are sent as JSON,
    exceptions are raised, and an unscripted label raises ProviderError.
    """

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self._scripts: dict[str, list[Any]] = {}

    def script(self, label: str, *responses: Any) -> FakeProvider:
        self._scripts[label] = list(responses)
        return self

    def count(self, label: str | None = None) -> int:
        if label is None:
            return len(self.calls)
        return sum(1 for c in self.calls if c["label"].startswith(label))

    def _queue_for(self, label: str) -> list[Any] | None:
        if label in self._scripts:
            return self._scripts[label]
        for key, queue in self._scripts.items():
            if label.startswith(key):
                return queue
        return None

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        schema: dict[str, Any] | None = None,
        label: str = "analysis",
    ) -> str:
        self.calls.append(
            {"system": system_prompt, "user": user_prompt, "schema": schema, "label": label}
        )
        queue = self._queue_for(label)
        if not queue:
            raise ProviderError(f"no scripted response for {label}")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response


class Clock:
    """Settable clock; call it to read the current instant."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def client(provider: FakeProvider) -> AnalysisClient:
    return AnalysisClient(provider, timeout=1.0)


@pytest.fixture
def store() -> JsonJournalStore:
    return JsonJournalStore()


@pytest.fixture
def config() -> MindfulConfig:
    return MindfulConfig()


@pytest.fixture
def clock() -> Clock:
    # Wednesday
    return Clock(datetime(2024, 1, 3, 12, 0, tzinfo=UTC))


@pytest.fixture
def service(
    store: JsonJournalStore,
    client: AnalysisClient,
    config: MindfulConfig,
    clock: Clock,
) -> JournalService:
    return JournalService(store, client, config, clock=clock)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real credentials and user config out of every test."""
    for var in (
        "ANTHROPIC_API_KEY",
        "MINDFUL_MODEL",
        "MINDFUL_TIMEZONE",
        "MINDFUL_FIRST_WEEKDAY",
        "MINDFUL_STORE_PATH",
        "MINDFUL_USER_ID",
        "MINDFUL_PROVIDER_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
