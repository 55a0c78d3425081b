from __future__ import annotations
from typing import Optional, Dict, Any, Union
from pathlib import Path
from dataclasses import dataclass
from enum import Enum
import copy
import os
import yaml
import time
import logging

from .providers.base import BackendProvider, GenerationRequest, UpstreamResponse, UpstreamUnavailable
from .providers.ollama import OllamaProvider

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parents[2] / "config" / "config.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "backend": {
        "type": "ollama",
        "settings": {
            "base_url": "http://localhost:11434",
            "request_timeout_s": 120,
        },
    },
    "relay": {
        "default_model": "llama3",
        "fallback_text": "the model returned no content",
    },
    "logging": {"level": "INFO"},
}


class Provider(Enum):
    OLLAMA = "ollama"


@dataclass(frozen=True)
class RelaySettings:
    default_model: str
    fallback_text: str


def resolve_config_path(config_path: Optional[Union[Path, str]] = None) -> Path:
    if config_path:
        return Path(config_path)
    env_path = os.environ.get("RELAY_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


class BackendManager:
    """Owns the relay configuration and the single upstream provider.

    The provider is built lazily on first use; per-operation call statistics
    are kept for the health endpoint.
    """

    def __init__(self, config_path: Optional[Union[Path, str]] = None, provider: Optional[BackendProvider] = None):
        self.config_path = resolve_config_path(config_path)
        self.config = self._load_config()
        self._provider = provider
        self._stats: Dict[str, Dict[str, float]] = {}

        relay_cfg = self.config["relay"]
        self.relay = RelaySettings(
            default_model=relay_cfg["default_model"],
            fallback_text=relay_cfg["fallback_text"],
        )

    def _load_config(self) -> Dict:
        config = copy.deepcopy(DEFAULT_CONFIG)
        if self.config_path.exists():
            with open(self.config_path) as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ValueError(f"Config must be a mapping: {self.config_path}")
            for section, values in loaded.items():
                if isinstance(values, dict) and isinstance(config.get(section), dict):
                    config[section].update(values)
                else:
                    config[section] = values
        else:
            logger.warning(f"Config not found at {self.config_path}, using defaults")

        backend = config.get("backend")
        if not isinstance(backend, dict):
            raise ValueError("Config missing 'backend'")
        if backend.get("type") not in {p.value for p in Provider}:
            raise ValueError(f"Unknown backend type: {backend.get('type')}")
        settings = backend.get("settings") or {}
        env_url = os.environ.get("OLLAMA_BASE_URL")
        if env_url:
            settings["base_url"] = env_url
        if not settings.get("base_url"):
            raise ValueError("Backend settings missing 'base_url'")
        backend["settings"] = settings

        relay = config.get("relay")
        if not isinstance(relay, dict):
            raise ValueError("Config 'relay' must be a mapping")
        for key in ("default_model", "fallback_text"):
            if not isinstance(relay.get(key), str) or not relay[key].strip():
                raise ValueError(f"Relay setting '{key}' must be a non-empty string")

        return config

    @property
    def provider(self) -> BackendProvider:
        if self._provider is None:
            backend = self.config["backend"]
            if backend["type"] == Provider.OLLAMA.value:
                self._provider = OllamaProvider(**backend["settings"])
            else:
                raise ValueError(f"Unknown backend type: {backend['type']}")
            logger.info(f"initialized backend provider: {backend['type']} at {backend['settings']['base_url']}")
        return self._provider

    def generate(self, request: GenerationRequest) -> UpstreamResponse:
        return self._call("generate", lambda: self.provider.generate(request))

    def list_models(self) -> UpstreamResponse:
        return self._call("list_models", self.provider.list_models)

    def health_check(self) -> bool:
        return self.provider.health_check()

    def _call(self, operation: str, fn) -> UpstreamResponse:
        start_time = time.perf_counter()
        try:
            response = fn()
        except UpstreamUnavailable:
            self._track_stats(operation, (time.perf_counter() - start_time) * 1000, success=False)
            raise
        self._track_stats(operation, (time.perf_counter() - start_time) * 1000, success=True)
        return response

    def _track_stats(self, operation: str, latency_ms: float, success: bool):
        if operation not in self._stats:
            self._stats[operation] = {
                'total_calls': 0,
                'successful_calls': 0,
                'total_latency_ms': 0
            }

        stats = self._stats[operation]
        stats['total_calls'] += 1
        if success:
            stats['successful_calls'] += 1
            stats['total_latency_ms'] += latency_ms

    def get_stats(self, operation: Optional[str] = None) -> Dict:
        if operation:
            return self._stats.get(operation, {})
        return self._stats

    def cleanup(self):
        if self._provider is not None:
            try:
                self._provider.cleanup()
                logger.info("Cleaned up backend provider")
            except Exception as e:
                logger.error(f"Backend provider cleanup failed: {e}")
        self._provider = None
