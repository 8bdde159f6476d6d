"""
Static Context - helper library, helper docs and sample code used in prompts

Loaded once per process and shared by reference with the prompt builder and
the LLM service. A failed load is never fatal: prompts are simply built
without the optional sections.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import aiohttp

logger = logging.getLogger(__name__)

RESOURCE_KEYS = ("helperSource", "helperDocs", "sampleCode")
# /context mount of this app, see main.py
DEFAULT_CONTEXT_URL = "http://localhost:8000/context"


class StaticContextLoadError(Exception):
    """One of the context resources could not be fetched"""


class StaticContext:
    """Process-wide cache of the three auxiliary prompt resources"""

    def __init__(
        self,
        base_url: str,
        resources: dict[str, str],
        timeout_seconds: int = 15,
        session_factory: Callable[..., Any] | None = None,
        local_dir: Optional[Path] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.local_dir = local_dir
        self.resources = resources
        self.timeout_seconds = timeout_seconds
        self._session_factory = session_factory or aiohttp.ClientSession
        self._lock = asyncio.Lock()

        self.helper_source = ""
        self.helper_docs = ""
        self.sample_code = ""
        self.loaded = False

    @classmethod
    def from_config(cls, config: dict[str, Any], bundled_dir: Optional[Path] = None, **kwargs) -> "StaticContext":
        """Build from the ``context`` section.

        When ``bundled_dir`` is given and the base URL is empty or the
        default self-served ``/context`` mount, the files are read from that
        directory instead of over HTTP.
        """
        cfg = config.get("context", {})
        resources = {key: cfg.get(key, "") for key in RESOURCE_KEYS}
        base_url = cfg.get("baseUrl", "")
        if bundled_dir is not None and base_url.rstrip("/") in ("", DEFAULT_CONTEXT_URL):
            kwargs.setdefault("local_dir", bundled_dir)
        return cls(base_url, resources, **kwargs)

    def _url_for(self, key: str) -> str:
        return f"{self.base_url}/{self.resources[key].lstrip('/')}"

    async def _fetch(self, session, key: str) -> str:
        url = self._url_for(key)
        async with session.get(url) as response:
            if response.status != 200:
                raise StaticContextLoadError(f"Failed to load {url} (HTTP {response.status})")
            return await response.text()

    async def _read_local(self, key: str) -> str:
        path = self.local_dir / self.resources[key].lstrip("/")
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as e:
            raise StaticContextLoadError(f"Failed to read {path}: {e}") from e

    async def load(self) -> bool:
        """Fetch all three resources; returns True once the context is loaded.

        Concurrent callers share one fetch: whoever gets the lock first loads,
        the others see ``loaded`` set when they acquire it.
        """
        async with self._lock:
            if self.loaded:
                return True

            try:
                if self.local_dir is not None:
                    helper_source, helper_docs, sample_code = await asyncio.gather(
                        *(self._read_local(key) for key in RESOURCE_KEYS)
                    )
                else:
                    timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
                    async with self._session_factory(timeout=timeout) as session:
                        helper_source, helper_docs, sample_code = await asyncio.gather(
                            *(self._fetch(session, key) for key in RESOURCE_KEYS)
                        )
            except (StaticContextLoadError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning("Static context load failed: %s", e)
                return False

            self.helper_source = helper_source
            self.helper_docs = helper_docs
            self.sample_code = sample_code
            self.loaded = True
            logger.info(
                "Static context loaded (helper: %d chars, docs: %d chars, samples: %d chars)",
                len(helper_source),
                len(helper_docs),
                len(sample_code),
            )
            return True

    async def ensure_loaded(self) -> bool:
        """Lazy fallback used right before a generation call"""
        if self.loaded:
            return True
        return await self.load()
