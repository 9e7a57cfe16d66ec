from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Union

import pytest


@pytest.fixture(autouse=True)
def _isolate_home(tmp_path_factory, monkeypatch):
    """Keep tests away from the real ~/.jisi/config.json and JISI_* settings."""
    base = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(base))
    monkeypatch.setattr(Path, "home", lambda: base)
    for name in ("JISI_WS_URL", "JISI_API_URL", "JISI_PROJECT_PATH"):
        monkeypatch.delenv(name, raising=False)


_CLOSE = object()


class FakeSocket:
    """Stands in for a websockets client connection."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._incoming: asyncio.Queue[Any] = asyncio.Queue()

    def feed(self, frame: Union[dict[str, Any], str, bytes]) -> None:
        self._incoming.put_nowait(json.dumps(frame) if isinstance(frame, dict) else frame)

    def drop(self) -> None:
        """Server closes the connection cleanly."""
        self._incoming.put_nowait(_CLOSE)

    def fail(self, exc: BaseException) -> None:
        self._incoming.put_nowait(exc)

    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(text) for text in self.sent]

    async def send(self, text: str) -> None:
        self.sent.append(text)

    async def close(self) -> None:
        self.closed = True
        self._incoming.put_nowait(_CLOSE)

    def __aiter__(self) -> "FakeSocket":
        return self

    async def __anext__(self) -> Any:
        item = await self._incoming.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeServer:
    """Connect factory handing out FakeSockets; can refuse a number of attempts."""

    def __init__(self) -> None:
        self.sockets: list[FakeSocket] = []
        self.urls: list[str] = []
        self.refuse = 0

    async def connect(self, url: str) -> FakeSocket:
        self.urls.append(url)
        if self.refuse:
            self.refuse -= 1
            raise ConnectionRefusedError("connection refused")
        sock = FakeSocket()
        self.sockets.append(sock)
        return sock

    @property
    def latest(self) -> FakeSocket:
        return self.sockets[-1]


class _Handle:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """call_later() driven by advance() instead of the wall clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: list[_Handle] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> _Handle:
        handle = _Handle(self.now + delay, callback, args)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled)

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = sorted((h for h in self._handles if not h.cancelled and h.when <= self.now), key=lambda h: h.when)
        self._handles = [h for h in self._handles if not h.cancelled and h not in due]
        for handle in due:
            handle.callback(*handle.args)


async def _settle(rounds: int = 20) -> None:
    """Let background tasks (reader, writer, reconnect loop) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def settle() -> Callable[..., Any]:
    return _settle
