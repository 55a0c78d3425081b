from __future__ import annotations
from typing import Any, Dict, Optional
import json
import time
import logging
import httpx
from .base import BackendProvider, GenerationRequest, UpstreamResponse, UpstreamUnavailable, UpstreamTimeout

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"
TAGS_PATH = "/api/tags"

class OllamaProvider(BackendProvider):
    """Talks to an Ollama-compatible server over plain HTTP.

    Bodies are buffered in full and returned untouched together with the status
    code, so callers see exactly what the server sent (NDJSON for generate).
    No retries: one failed call is one failed request.
    """

    def __init__(self, base_url: str = "http://localhost:11434", request_timeout_s: float = 120):
        self.base_url = base_url.rstrip("/")
        self.request_timeout_s = request_timeout_s
        self.client = httpx.Client(base_url=self.base_url, timeout=request_timeout_s)

    def _send(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> UpstreamResponse:
        t0 = time.perf_counter()
        try:
            if body is None:
                response = self.client.request(method, path)
            else:
                response = self.client.request(
                    method,
                    path,
                    content=json.dumps(body),
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as e:
            logger.error(f"Ollama {method} {path} timed out after {self.request_timeout_s}s: {e}")
            raise UpstreamTimeout(f"Ollama timeout after {self.request_timeout_s}s: {e}") from e
        except httpx.HTTPError as e:
            logger.error(f"Ollama {method} {path} failed: {e}")
            raise UpstreamUnavailable(f"Ollama request failed: {e}") from e

        dt = time.perf_counter() - t0
        logger.info(f"Ollama {method} {path} -> {response.status_code} in {dt:.2f}s")
        meta = {"provider": "ollama", "path": path, "latency": dt}
        return UpstreamResponse(body=response.text, status_code=response.status_code, meta=meta)

    def generate(self, req: GenerationRequest) -> UpstreamResponse:
        return self._send("POST", GENERATE_PATH, req.to_payload())

    def list_models(self) -> UpstreamResponse:
        return self._send("GET", TAGS_PATH)

    def health_check(self) -> bool:
        try:
            return self.list_models().status_code == 200
        except UpstreamUnavailable:
            return False

    def cleanup(self) -> None:
        self.client.close()
