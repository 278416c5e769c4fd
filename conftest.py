"""Shared pytest fixtures."""
import os
import tempfile
from types import SimpleNamespace

# Set minimal environment before application modules are imported
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="nanogen-logs-"))
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")

import pytest

from image.models import GenerateImageRequest


def make_part(text=None, data=None, mime_type=None):
    inline = SimpleNamespace(data=data, mime_type=mime_type) if data is not None else None
    return SimpleNamespace(text=text, inline_data=inline)


def make_response(*parts):
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


class FakeGenerator:
    """Returns or raises the queued outcomes in order; the last one repeats."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.requests = []

    async def generate(self, request):
        self.calls += 1
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class OverloadError(Exception):
    code = 503


@pytest.fixture
def request_model():
    return GenerateImageRequest(prompt="A lighthouse at dusk, oil painting")


@pytest.fixture
def png_response():
    return make_response(make_part(data=b"\x89PNG fake", mime_type="image/png"))


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
