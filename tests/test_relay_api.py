"""
Tests for the relay API endpoints.

Covers the full pipeline through HTTP with a fake backend provider:
- JSON and multipart generation requests
- Status pass-through and fallback substitution
- Error mapping, CORS preflight and unknown routes
"""

import io
import json
import pytest
from fastapi.testclient import TestClient
from unittest.mock import Mock
from PIL import Image

from src.api.main import create_app
from src.api.dependencies.backend import get_backend_manager
from src.models.manager import BackendManager
from src.models.providers.base import UpstreamResponse, UpstreamTimeout, UpstreamUnavailable


@pytest.fixture
def provider():
    """Fake backend provider; tests set return values per call."""
    provider = Mock()
    provider.generate.return_value = UpstreamResponse(body='{"response":"He"}\n{"response":"llo"}\n', status_code=200)
    provider.list_models.return_value = UpstreamResponse(body='{"models": [{"name": "llama3:latest"}]}', status_code=200)
    provider.health_check.return_value = True
    return provider


@pytest.fixture
def backend_manager(tmp_path, provider, monkeypatch):
    monkeypatch.delenv("OLLAMA_BASE_URL", raising=False)
    return BackendManager(config_path=tmp_path / "absent.yaml", provider=provider)


@pytest.fixture
def client(backend_manager):
    """Test client for the FastAPI app."""
    app = create_app()
    app.dependency_overrides[get_backend_manager] = lambda: backend_manager
    return TestClient(app)


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new('RGB', (8, 8), color='blue').save(buffer, format='PNG')
    return buffer.getvalue()


def sent_payload(provider) -> dict:
    request = provider.generate.call_args[0][0]
    return request.to_payload()


class TestGenerate:

    def test_json_request(self, client, provider):
        response = client.post("/api/ollama", json={"prompt": "hi"})

        assert response.status_code == 200
        assert response.json() == {"response": "Hello"}
        assert response.headers["access-control-allow-origin"] == "*"
        assert sent_payload(provider) == {"model": "llama3", "prompt": "hi"}

    def test_json_without_content_type(self, client, provider):
        response = client.post("/api/ollama", content=b'{"prompt": "hi", "model": "phi3"}')

        assert response.status_code == 200
        assert sent_payload(provider)["model"] == "phi3"

    def test_multipart_with_image(self, client, provider, png_bytes):
        response = client.post(
            "/api/ollama",
            data={"payload": json.dumps({"prompt": "describe", "model": "llava"})},
            files={"image": ("cat.png", png_bytes, "image/png")},
        )

        assert response.status_code == 200
        assert response.json() == {"response": "Hello"}
        payload = sent_payload(provider)
        assert payload["prompt"] == "describe"
        assert payload["model"] == "llava"
        assert payload["image"].startswith("data:image/png;base64,")

    def test_multipart_without_image(self, client, provider):
        response = client.post(
            "/api/ollama",
            data={"payload": json.dumps({"prompt": "describe"})},
            files={"unused": ("note.txt", b"x", "text/plain")},
        )

        assert response.status_code == 200
        assert "image" not in sent_payload(provider)

    def test_upstream_error_status_passed_through(self, client, provider):
        provider.generate.return_value = UpstreamResponse(body="", status_code=500)

        response = client.post("/api/ollama", json={"prompt": "hi"})

        assert response.status_code == 500
        assert response.json() == {"response": "the model returned no content"}

    def test_malformed_lines_tolerated(self, client, provider):
        provider.generate.return_value = UpstreamResponse(
            body='{"response":"A"}\nnot json\n{"response":"B"}\n{"other":"x"}\n', status_code=200
        )

        response = client.post("/api/ollama", json={"prompt": "hi"})

        assert response.json() == {"response": "AB"}


class TestGenerateErrors:

    def test_invalid_json_body(self, client, provider):
        response = client.post("/api/ollama", content=b"not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "malformed_payload"
        assert data["error"]
        provider.generate.assert_not_called()

    def test_multipart_missing_payload(self, client, provider):
        response = client.post("/api/ollama", data={"prompt": "hi"}, files={"image": ("a.png", b"x", "image/png")})

        assert response.status_code == 400
        assert response.json()["error_code"] == "malformed_payload"
        provider.generate.assert_not_called()

    def test_multipart_invalid_payload_json(self, client, provider):
        response = client.post("/api/ollama", data={"payload": "{oops"}, files={"image": ("a.png", b"x", "image/png")})

        assert response.status_code == 400

    def test_deeply_nested_json_body(self, client, provider):
        response = client.post("/api/ollama", content=b"[" * 100000, headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("application/json")
        assert response.json()["error_code"] == "malformed_payload"
        provider.generate.assert_not_called()

    def test_unexpected_error_is_json(self, backend_manager, provider):
        app = create_app()
        app.dependency_overrides[get_backend_manager] = lambda: backend_manager
        client = TestClient(app, raise_server_exceptions=False)
        provider.generate.side_effect = KeyError("boom")

        response = client.post("/api/ollama", json={"prompt": "hi"})

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.headers["access-control-allow-origin"] == "*"
        data = response.json()
        assert data["error_code"] == "internal_error"
        assert "boom" not in data["error"]

    def test_upstream_unavailable(self, client, provider):
        provider.generate.side_effect = UpstreamUnavailable("Ollama request failed: connection refused")

        response = client.post("/api/ollama", json={"prompt": "hi"})

        assert response.status_code == 502
        assert response.json()["error_code"] == "upstream_unavailable"

    def test_upstream_timeout(self, client, provider):
        provider.generate.side_effect = UpstreamTimeout("Ollama timeout after 120s")

        response = client.post("/api/ollama", json={"prompt": "hi"})

        assert response.status_code == 504
        assert response.json()["error_code"] == "upstream_timeout"


class TestModels:

    def test_models_pass_through(self, client):
        response = client.get("/api/models")

        assert response.status_code == 200
        assert response.json() == {"models": [{"name": "llama3:latest"}]}
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["content-type"].startswith("application/json")

    def test_models_non_json_upstream(self, client, provider):
        provider.list_models.return_value = UpstreamResponse(body="<html>bad gateway</html>", status_code=502)

        response = client.get("/api/models")

        assert response.status_code == 502
        assert response.json()["error_code"] == "upstream_unavailable"

    def test_models_backend_down(self, client, provider):
        provider.list_models.side_effect = UpstreamUnavailable("down")

        assert client.get("/api/models").status_code == 502


class TestRouting:

    def test_preflight(self, client):
        response = client.options("/api/ollama")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "POST, GET, OPTIONS"
        assert response.headers["access-control-allow-headers"] == "Content-Type"

    @pytest.mark.parametrize("request_headers", ["Content-Type", "x-foo"])
    def test_browser_preflight(self, client, request_headers):
        response = client.options(
            "/api/ollama",
            headers={
                "Origin": "https://example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": request_headers,
            },
        )

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "POST, GET, OPTIONS"
        assert response.headers["access-control-allow-headers"] == "Content-Type"

    def test_preflight_any_path(self, client):
        assert client.options("/whatever/else").status_code == 200

    def test_index_page(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "/api/ollama" in response.text

    @pytest.mark.parametrize("method, path", [
        ("GET", "/nope"),
        ("GET", "/api/ollama"),
        ("POST", "/api/models"),
        ("POST", "/"),
        ("DELETE", "/api/ollama"),
    ])
    def test_not_found(self, client, method, path):
        response = client.request(method, path)

        assert response.status_code == 404
        assert response.text == "Not found"


class TestHealth:

    def test_health(self, client, provider):
        client.post("/api/ollama", json={"prompt": "hi"})

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "backend" in data["dependencies"]
        assert data["stats"]["generate"]["total_calls"] == 1

    def test_health_degraded(self, client, provider):
        provider.health_check.return_value = False

        assert client.get("/health").json()["status"] == "degraded"
