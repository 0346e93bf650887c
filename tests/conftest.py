from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from listingai.config import Settings
from listingai.core import ListingApp
from listingai.credentials import CredentialStore

Handler = Callable[[httpx.Request], httpx.Response]


def text_payload(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


def parts_payload(*parts: dict[str, Any]) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": list(parts), "role": "model"}}]}


def body_of(request: httpx.Request) -> dict[str, Any]:
    return json.loads(request.content)


class Recorder:
    """MockTransport handler that records requests and replies from a callable."""

    def __init__(self, reply: Handler) -> None:
        self.reply = reply
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.reply(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def reply_json(payload: dict[str, Any], status_code: int = 200) -> Handler:
    return lambda request: httpx.Response(status_code, json=payload)


def fail_if_called(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"Unexpected request to {request.url}")


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        credential_file=tmp_path / "credentials.json",
        output_dir=str(tmp_path / "out"),
    )


@pytest.fixture
def make_app(test_settings):
    def _make(reply: Handler = fail_if_called, credential: str | None = "test-key"):
        recorder = Recorder(reply)
        store = CredentialStore(test_settings.credential_file)
        if credential:
            test_settings.credential_file.write_text(
                json.dumps({"gemini_api_key": credential}), encoding="utf-8"
            )
        listing = ListingApp(test_settings, store=store, transport=recorder.transport)
        return listing, recorder

    return _make
