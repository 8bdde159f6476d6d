"""
Script Publisher - client for the Drive / Apps Script proxy worker

The proxy owns the Google REST calls; this side only forwards the generated
code and reports success, errors and expired tokens.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable

import aiohttp

from models.scripts import CreateScriptResult, PublishScriptResult

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "GeneratedVibeCoderScript.gs"
DEFAULT_DESCRIPTION = "Published via VibeCoder"
REAUTH_ERROR = "Google API token expired. Please log in again."


class ScriptPublisher:
    """Save generated scripts to Drive and publish deployments via the proxy"""

    def __init__(
        self,
        proxy_base_url: str,
        timeout_seconds: int = 60,
        session_factory: Callable[..., Any] | None = None,
    ):
        self.proxy_base_url = proxy_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session_factory = session_factory or aiohttp.ClientSession

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ScriptPublisher":
        return cls(config.get("proxy", {}).get("baseUrl", "http://localhost:8787"))

    async def _post(self, path: str, body: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        url = f"{self.proxy_base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with self._session_factory(timeout=timeout) as session:
            async with session.post(url, json=body) as response:
                text = await response.text()
                try:
                    data = json.loads(text) if text else {}
                except json.JSONDecodeError:
                    data = {"error": text}
                return response.status, data if isinstance(data, dict) else {}

    @staticmethod
    def _failure(status: int, data: dict[str, Any], action: str) -> dict[str, Any]:
        needs_reauth = status == 401 or bool(data.get("needsReAuth"))
        error = data.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        if error is not None and not isinstance(error, str):
            error = json.dumps(error)
        if needs_reauth:
            error = error or REAUTH_ERROR
        logger.error("Proxy %s failed (HTTP %s): %s", action, status, error)
        return {
            "success": False,
            "error": error or f"Failed to {action} (HTTP {status})",
            "needsReAuth": needs_reauth,
        }

    async def create_script(
        self, script_content: str, access_token: str, file_name: str | None = None
    ) -> CreateScriptResult:
        if not script_content or not access_token:
            return CreateScriptResult(success=False, error="Missing scriptContent or accessToken")

        body = {
            "scriptContent": script_content,
            "accessToken": access_token,
            "fileName": file_name or DEFAULT_FILE_NAME,
        }
        try:
            status, data = await self._post("/api/appscript/create", body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Proxy create request error: %s", e)
            return CreateScriptResult(success=False, error=str(e) or "Request timed out")

        if status != 200 or not data.get("success"):
            return CreateScriptResult(**self._failure(status, data, "create script"))

        logger.info("Saved script %s to Drive", data.get("fileId"))
        return CreateScriptResult(
            success=True,
            fileId=data.get("fileId"),
            webViewLink=data.get("webViewLink"),
            name=data.get("name"),
        )

    async def publish_script(
        self, script_id: str, access_token: str, description: str | None = None
    ) -> PublishScriptResult:
        if not script_id or not access_token:
            return PublishScriptResult(success=False, error="Missing scriptId or accessToken")

        body = {
            "scriptId": script_id,
            "accessToken": access_token,
            "description": description or DEFAULT_DESCRIPTION,
        }
        try:
            status, data = await self._post("/api/appscript/publish", body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Proxy publish request error: %s", e)
            return PublishScriptResult(success=False, error=str(e) or "Request timed out")

        if status != 200 or not data.get("success"):
            return PublishScriptResult(**self._failure(status, data, "publish script"))

        logger.info("Published script %s as deployment %s", script_id, data.get("deploymentId"))
        return PublishScriptResult(
            success=True,
            deploymentId=data.get("deploymentId"),
            versionNumber=data.get("versionNumber"),
            deploymentUrl=data.get("deploymentUrl"),
        )
