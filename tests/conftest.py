"""Shared fixtures: a fake model client and an app built around it."""
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from drug_check.config import Settings
from drug_check.main import create_app


class FakeModel:
    """Stands in for GeminiClient; records every call."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, prompt, image=None):
        self.calls.append({"prompt": prompt, "image": image})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def settings():
    return Settings(
        gemini_api_key="test-key",
        allowed_origins=["https://drug-app-frontend.vercel.app"],
        max_body_bytes=1024 * 1024,
    )


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def client(settings, fake_model):
    return TestClient(create_app(settings, model=fake_model))
