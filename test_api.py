"""API tests for the image generation endpoints."""
import asyncio
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app import app
from config import Config
from conftest import FakeGenerator, OverloadError, RecordingSleep, make_part, make_response
from image.key_selection import EnvironmentKeySelector
from image.routes import get_executor, get_key_selector
from image.services import GenerationRequestExecutor


class FakeSelector:
    def __init__(self, has_key=True, fail=False):
        self.has_key = has_key
        self.fail = fail
        self.opened = 0

    async def has_selected_api_key(self):
        return self.has_key

    async def open_select_key(self):
        self.opened += 1
        if self.fail:
            raise RuntimeError("selection dialog closed")
        self.has_key = True


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def use_generator(generator, timeout=5.0):
    executor = GenerationRequestExecutor(generator, timeout=timeout, max_retries=3, sleep=RecordingSleep())
    app.dependency_overrides[get_executor] = lambda: executor
    return executor


def use_selector(selector):
    app.dependency_overrides[get_key_selector] = lambda: selector


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_generate_returns_image(client, png_response):
    generator = FakeGenerator(png_response)
    use_generator(generator)
    use_selector(None)

    response = client.post("/api/generate", json={
        "prompt": "  a red fox in snow  ",
        "aspect_ratio": "16:9",
        "resolution": "2K",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["prompt"] == "a red fox in snow"
    assert body["image"]["mime_type"] == "image/png"
    assert body["url"].startswith("data:image/png;base64,")
    assert body["download_name"] == f"nanogen-{body['timestamp']}.png"

    sent = generator.requests[0]
    assert sent.prompt == "a red fox in snow"
    assert sent.aspect_ratio.value == "16:9"
    assert sent.resolution.value == "2K"
    assert [s.category.value for s in sent.safety_settings] == [
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    ]


def test_generate_passes_custom_safety_settings(client, png_response):
    generator = FakeGenerator(png_response)
    use_generator(generator)
    use_selector(None)

    response = client.post("/api/generate", json={
        "prompt": "a castle",
        "safety_settings": [
            {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
        ],
    })

    assert response.status_code == 200
    settings = generator.requests[0].safety_settings
    assert len(settings) == 1
    assert settings[0].threshold.value == "BLOCK_NONE"


def test_generate_rejects_duplicate_categories(client, png_response):
    generator = FakeGenerator(png_response)
    use_generator(generator)
    use_selector(None)

    response = client.post("/api/generate", json={
        "prompt": "a castle",
        "safety_settings": [
            {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
            {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_ONLY_HIGH"},
        ],
    })

    assert response.status_code == 422
    assert generator.calls == 0


def test_generate_rejects_unknown_aspect_ratio(client, png_response):
    use_generator(FakeGenerator(png_response))
    use_selector(None)

    response = client.post("/api/generate", json={"prompt": "a castle", "aspect_ratio": "2:1"})
    assert response.status_code == 422


def test_generate_rejects_blank_prompt(client, png_response):
    generator = FakeGenerator(png_response)
    use_generator(generator)
    use_selector(None)

    response = client.post("/api/generate", json={"prompt": "   "})

    assert response.status_code == 400
    assert generator.calls == 0


def test_generate_requires_selected_key(client, png_response):
    generator = FakeGenerator(png_response)
    use_generator(generator)
    use_selector(FakeSelector(has_key=False))

    response = client.post("/api/generate", json={"prompt": "a castle"})

    assert response.status_code == 401
    assert generator.calls == 0


def test_generate_refusal_maps_to_422(client):
    use_generator(FakeGenerator(make_response(make_part(text="I can't draw that."))))
    use_selector(None)

    response = client.post("/api/generate", json={"prompt": "a castle"})

    assert response.status_code == 422
    assert response.json()["detail"] == "Generation failed: I can't draw that."


def test_generate_overload_maps_to_503(client):
    generator = FakeGenerator(OverloadError("busy"))
    use_generator(generator)
    use_selector(None)

    response = client.post("/api/generate", json={"prompt": "a castle"})

    assert response.status_code == 503
    assert "high traffic" in response.json()["detail"]
    assert generator.calls == 4


def test_generate_transport_error_maps_to_502(client):
    use_generator(FakeGenerator(ConnectionError("connection reset")))
    use_selector(None)

    response = client.post("/api/generate", json={"prompt": "a castle"})

    assert response.status_code == 502
    assert "connection reset" in response.json()["detail"]


def test_options_lists_choices_and_defaults(client):
    response = client.get("/api/options")

    assert response.status_code == 200
    body = response.json()
    assert [r["value"] for r in body["aspect_ratios"]] == ["1:1", "3:4", "4:3", "9:16", "16:9"]
    assert body["resolutions"] == ["1K", "2K", "4K"]
    assert len(body["safety_categories"]) == 4
    assert {t["value"] for t in body["safety_thresholds"]} == {
        "BLOCK_NONE", "BLOCK_ONLY_HIGH", "BLOCK_MEDIUM_AND_ABOVE", "BLOCK_LOW_AND_ABOVE"
    }
    assert body["defaults"]["aspect_ratio"] == "1:1"
    assert body["defaults"]["resolution"] == "1K"
    assert body["defaults"]["safety_settings"][2] == {
        "category": "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "threshold": "BLOCK_MEDIUM_AND_ABOVE",
    }


def test_key_status_without_selector_is_permissive(client):
    use_selector(None)
    response = client.get("/api/key")
    assert response.json() == {"has_key": True}


def test_key_select_runs_selector(client):
    selector = FakeSelector(has_key=False)
    use_selector(selector)

    response = client.post("/api/key/select")

    assert response.status_code == 200
    assert response.json() == {"has_key": True}
    assert selector.opened == 1


def test_key_select_failure(client):
    use_selector(FakeSelector(has_key=False, fail=True))

    response = client.post("/api/key/select")

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to select API key. Please try again."


def test_key_select_with_explicit_key(client, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setattr(Config, "GEMINI_API_KEY", "")
    use_selector(EnvironmentKeySelector())

    assert client.get("/api/key").json() == {"has_key": False}
    response = client.post("/api/key/select", json={"api_key": "new-key"})

    assert response.json() == {"has_key": True}
    assert Config.GEMINI_API_KEY == "new-key"


def test_key_select_rejects_key_the_selector_cannot_take(client):
    selector = FakeSelector(has_key=True)
    use_selector(selector)

    response = client.post("/api/key/select", json={"api_key": "ignored-key"})

    assert response.status_code == 400
    assert response.json()["detail"].endswith("This server does not accept API keys in the request.")
    assert selector.opened == 0


def test_key_select_rejects_key_without_selector(client):
    use_selector(None)

    response = client.post("/api/key/select", json={"api_key": "ignored-key"})

    assert response.status_code == 400


def test_generate_timeout_maps_to_504(client):
    class StuckGenerator:
        async def generate(self, request):
            await asyncio.Event().wait()

    use_generator(StuckGenerator(), timeout=0.01)
    use_selector(None)

    response = client.post("/api/generate", json={"prompt": "a castle"})

    assert response.status_code == 504
    assert response.json()["detail"] == "Generation timed out. The request took too long."


def test_generate_malformed_maps_to_502(client):
    generator = FakeGenerator(SimpleNamespace(candidates=[]))
    use_generator(generator)
    use_selector(None)

    response = client.post("/api/generate", json={"prompt": "a castle"})

    assert response.status_code == 502
    assert response.json()["detail"] == "No image data found in the response."
    assert generator.calls == 1
