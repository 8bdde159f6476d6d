"""
Configuration Manager - Handle backend settings and the local credential store
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .static_context import DEFAULT_CONTEXT_URL

logger = logging.getLogger(__name__)

API_KEY_FIELD = "geminiApiKey"


class ConfigManager:
    """Manage configuration persistence"""

    _instance = None
    _config_file = None

    def __init__(self):
        try:
            # 1st: environment variable
            config_dir = os.environ.get("VIBESCRIPT_CONFIG_DIR")

            # 2nd: ~/.vibescript
            if not config_dir:
                try:
                    config_dir = os.path.expanduser("~/.vibescript")
                except Exception:
                    config_dir = None

            if config_dir:
                config_path = Path(config_dir)
                try:
                    config_path.mkdir(parents=True, exist_ok=True)
                    self._config_file = config_path / "config.json"
                except OSError as e:
                    logger.warning("Cannot write to %s: %s", config_dir, e)
                    self._config_file = None

            # 3rd: temp dir when nothing else is writable
            if not self._config_file:
                tmp_dir = Path(tempfile.gettempdir()) / "vibescript"
                tmp_dir.mkdir(parents=True, exist_ok=True)
                self._config_file = tmp_dir / "config.json"
                logger.info("Using temporary config path: %s", self._config_file)

        except OSError as e:
            logger.error("Critical error in ConfigManager init: %s", e)
            self._config_file = Path(tempfile.gettempdir()) / "vibescript_config_fallback.json"

        self._config = self._load_config()

    @classmethod
    def get_instance(cls) -> "ConfigManager":
        """Get singleton instance"""
        if cls._instance is None:
            cls._instance = ConfigManager()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Drop the singleton so the next get_instance() re-reads the environment"""
        cls._instance = None

    @property
    def config_file(self) -> Path:
        return self._config_file

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file, filling in missing sections from defaults"""
        defaults = self._default_config()
        if not self._config_file.exists():
            return defaults

        try:
            with open(self._config_file) as f:
                stored = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Error loading config: %s", e)
            return defaults

        for key, value in stored.items():
            if isinstance(value, dict) and isinstance(defaults.get(key), dict):
                defaults[key] = {**defaults[key], **value}
            else:
                defaults[key] = value
        return defaults

    def _default_config(self) -> dict[str, Any]:
        """Get default configuration"""
        return {
            API_KEY_FIELD: "",
            "model": "gemini-2.5-pro",
            "includeHelper": True,
            "includeSampleCode": True,
            "gemini": {
                "baseUrl": "https://generativelanguage.googleapis.com/v1beta",
                "temperature": 0.7,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": 8192,
                "timeoutSeconds": 120,
                # user-facing id -> provider id; empty means built-in mapping
                "modelMap": {},
            },
            "context": {
                "baseUrl": DEFAULT_CONTEXT_URL,
                "helperSource": "GeminiHelper.gs",
                "helperDocs": "GeminiHelper.md",
                "sampleCode": "sample-code.md",
            },
            "proxy": {"baseUrl": "http://localhost:8787"},
            "server": {"host": "0.0.0.0", "port": 8000},
        }

    def get_config(self) -> dict[str, Any]:
        """Get current configuration"""
        # Reload config from file to ensure we have the latest
        self._config = self._load_config()
        return copy.deepcopy(self._config)

    def save_config(self, config: dict[str, Any]):
        """Save configuration to file"""
        self._config.update(config)

        self._config_file.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self._config_file, "w") as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            raise RuntimeError(f"Failed to save config: {e}")

    def get(self, key: str, default=None):
        """Get specific config value"""
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set specific config value"""
        self._config[key] = value
        self.save_config(self._config)

    # ========== Credential store ==========

    def get_api_key(self) -> str | None:
        """Stored Gemini API key, or None when nothing has been saved"""
        return self.get_config().get(API_KEY_FIELD) or None

    def set_api_key(self, api_key: str):
        self.set(API_KEY_FIELD, api_key.strip())


def mask_key(key: str) -> str:
    """Show only the first and last four characters of a secret"""
    if not key:
        return ""
    if len(key) <= 8:
        return "*" * len(key)
    return key[:4] + "*" * (len(key) - 8) + key[-4:]
