"""
Fakes for explorer adapter tests.

FakeSession mimics the slice of aiohttp.ClientSession the transport uses:
``session.get(url, params=...)`` as an async context manager yielding a
response with ``status``, ``json()`` and ``text()``.
"""

import asyncio
import inspect
import json
from typing import Any, Callable, Optional


INVALID_JSON = object()


class FakeResponse:
    """Minimal aiohttp response stand-in."""

    def __init__(
        self,
        status: int = 200,
        json_data: Any = None,
        text: Optional[str] = None,
        body: Optional[bytes] = None,
    ) -> None:
        self.status = status
        self._json = json_data
        self._text = text
        self._body = body

    async def json(self, content_type=None) -> Any:
        if self._body is not None:
            return json.loads(self._body.decode("utf-8"))
        if self._json is INVALID_JSON or (self._json is None and self._text is not None):
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json

    async def text(self, encoding: Optional[str] = None, errors: str = "strict") -> str:
        # Raw bodies decode like aiohttp: utf-8, strict unless told otherwise
        if self._body is not None:
            return self._body.decode(encoding or "utf-8", errors)
        if self._text is not None:
            return self._text
        return json.dumps(self._json)


class _RequestContext:
    def __init__(self, produce: Callable[[], Any]) -> None:
        self._produce = produce

    async def __aenter__(self) -> FakeResponse:
        result = self._produce()
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return result

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        return False


class FakeSession:
    """Records every GET and answers through ``responder(url, params)``."""

    def __init__(self, responder: Callable[[str, Optional[dict]], Any]) -> None:
        self._responder = responder
        self.calls: list[tuple[str, Optional[dict]]] = []
        self.closed = False

    def get(self, url: str, params: Optional[dict] = None) -> _RequestContext:
        self.calls.append((url, dict(params) if params else None))
        return _RequestContext(lambda: self._responder(url, params))

    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]

    def actions(self) -> list[str]:
        """Etherscan ``action`` parameter of every call, in order."""
        return [(params or {}).get("action", "") for _, params in self.calls]

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


def route(table: dict[str, Any]) -> Callable[[str, Optional[dict]], Any]:
    """
    Responder that matches the URL suffix against ``table``.

    Values may be a FakeResponse, an exception instance, or a callable
    taking (url, params). Unmatched URLs answer 404.
    """
    def responder(url: str, params: Optional[dict]) -> Any:
        for suffix, answer in table.items():
            if url.endswith(suffix):
                if callable(answer) and not isinstance(answer, FakeResponse):
                    return answer(url, params)
                return answer
        return FakeResponse(status=404, text="Not Found")

    return responder


def etherscan_route(table: dict[str, Any]) -> Callable[[str, Optional[dict]], Any]:
    """Responder keyed by the Etherscan ``action`` parameter."""
    def responder(url: str, params: Optional[dict]) -> Any:
        answer = table.get((params or {}).get("action"))
        if answer is None:
            return FakeResponse(json_data={"status": "0", "message": "NOTOK", "result": "Unknown action"})
        if callable(answer) and not isinstance(answer, FakeResponse):
            return answer(url, params)
        return answer

    return responder
