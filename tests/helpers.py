"""Fake aiohttp sessions for exercising HTTP code without a network."""

from __future__ import annotations

import json
from typing import Any, Callable


class FakeContent:
    """Mimics ``response.content``: async iteration yields raw lines."""

    def __init__(self, lines: list[str | bytes]) -> None:
        self._lines = lines

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for line in self._lines:
            yield line if isinstance(line, bytes) else line.encode("utf-8")


class FakeResponse:
    def __init__(
        self,
        status: int = 200,
        body: Any = None,
        *,
        lines: list[str | bytes] | None = None,
        raises: BaseException | None = None,
    ) -> None:
        self.status = status
        self._body = body
        self.content = FakeContent(lines or [])
        self._raises = raises

    async def text(self) -> str:
        if self._body is None:
            return ""
        if isinstance(self._body, str):
            return self._body
        return json.dumps(self._body)

    async def json(self) -> Any:
        return json.loads(await self.text())

    async def __aenter__(self) -> "FakeResponse":
        if self._raises is not None:
            raise self._raises
        return self

    async def __aexit__(self, *exc) -> bool:
        return False


class FakeSession:
    def __init__(self, factory: "FakeSessionFactory", kwargs: dict[str, Any]) -> None:
        self._factory = factory
        self.kwargs = kwargs

    def post(self, url: str, json: Any = None, headers: Any = None) -> FakeResponse:
        return self._factory.dispatch("POST", url, json)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._factory.dispatch("GET", url, None)

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc) -> bool:
        return False


class FakeSessionFactory:
    """Stands in for ``aiohttp.ClientSession``; records every request made through it.

    ``responses`` is either a list consumed in order, or a callable
    ``(method, url, payload) -> FakeResponse``.
    """

    def __init__(self, responses: list[FakeResponse] | Callable[[str, str, Any], FakeResponse]) -> None:
        self._responses = responses
        self.calls: list[tuple[str, str, Any]] = []

    def __call__(self, **kwargs: Any) -> FakeSession:
        return FakeSession(self, kwargs)

    def dispatch(self, method: str, url: str, payload: Any) -> FakeResponse:
        self.calls.append((method, url, payload))
        if callable(self._responses):
            return self._responses(method, url, payload)
        return self._responses.pop(0)


def gemini_body(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def sse_line(text: str) -> str:
    return f"data: {json.dumps(gemini_body(text))}\n"
