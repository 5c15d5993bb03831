"""
Tests for the AI backend adapter and the per-provider wire formats.

External backends are exercised through FakeSession; no request ever leaves
the process.
"""
import base64

import pytest
import requests

from conftest import FakeResponse, make_jpeg
from providers.adapter import BACKEND_TYPES, AIBackendAdapter, build_backend
from providers.anthropic_messages import AnthropicBackend
from providers.gemini import GeminiBackend
from providers.local import LocalBackend
from providers.openai_chat import OpenAIBackend
from providers.prompts import ANALYSIS_PROMPT, LOCAL_ANALYSIS_MARKER, LOCAL_CODE_TEMPLATE
from shared.errors import BackendError, MissingCredential
from shared.schemas import BackendConfig, ImagePayload, ProviderKind, Snapshot

EXTERNAL_KINDS = [ProviderKind.OPENAI, ProviderKind.ANTHROPIC, ProviderKind.GOOGLE]

OPENAI_REPLY = {"choices": [{"message": {"role": "assistant", "content": "openai says hi"}}]}
ANTHROPIC_REPLY = {"content": [{"type": "text", "text": "anthropic says hi"}]}
GOOGLE_REPLY = {"candidates": [{"content": {"parts": [{"text": "gemini says hi"}]}}]}

ROUTES = {
    ProviderKind.OPENAI: ("/v1/chat/completions", OPENAI_REPLY, "openai says hi"),
    ProviderKind.ANTHROPIC: ("/v1/messages", ANTHROPIC_REPLY, "anthropic says hi"),
    ProviderKind.GOOGLE: (":generateContent", GOOGLE_REPLY, "gemini says hi"),
}


@pytest.fixture
def snapshot():
    return Snapshot(image_bytes=make_jpeg(320, 240))


def make_adapter(kind, session, api_key="sk-test", model=None):
    config = BackendConfig(provider_kind=kind, api_key=api_key, model=model)
    return AIBackendAdapter(config, session=session)


class TestRegistry:
    def test_every_provider_kind_has_a_backend(self):
        assert set(BACKEND_TYPES) == set(ProviderKind)

    @pytest.mark.parametrize(
        "kind,expected",
        [
            (ProviderKind.LOCAL, LocalBackend),
            (ProviderKind.OPENAI, OpenAIBackend),
            (ProviderKind.ANTHROPIC, AnthropicBackend),
            (ProviderKind.GOOGLE, GeminiBackend),
        ],
    )
    def test_build_backend(self, kind, expected):
        backend = build_backend(BackendConfig(provider_kind=kind, api_key="key"))
        assert isinstance(backend, expected)
        assert backend.kind is kind

    def test_model_override(self):
        backend = build_backend(
            BackendConfig(provider_kind=ProviderKind.OPENAI, api_key="key", model="gpt-4o-mini")
        )
        assert backend.model == "gpt-4o-mini"


class TestLocalBackend:
    def test_analysis_is_offline_and_deterministic(self, fake_session, snapshot):
        adapter = make_adapter(ProviderKind.LOCAL, fake_session, api_key=None)

        first = adapter.analyze(snapshot)
        second = adapter.analyze(Snapshot(image_bytes=snapshot.image_bytes))

        assert first == second
        assert LOCAL_ANALYSIS_MARKER in first
        assert "320x240" in first
        assert fake_session.calls == []

    def test_different_frames_have_different_fingerprints(self, fake_session):
        adapter = make_adapter(ProviderKind.LOCAL, fake_session)
        dark = adapter.analyze(Snapshot(image_bytes=make_jpeg(color=(0, 0, 0))))
        light = adapter.analyze(Snapshot(image_bytes=make_jpeg(color=(250, 250, 250))))
        assert dark != light

    def test_generate_interface_code_returns_template(self, fake_session):
        adapter = make_adapter(ProviderKind.LOCAL, fake_session)
        code = adapter.generate_interface_code("a settings screen")

        assert code == LOCAL_CODE_TEMPLATE
        assert "lv_btn_create" in code
        assert fake_session.calls == []


class TestCredentials:
    @pytest.mark.parametrize("kind", EXTERNAL_KINDS)
    @pytest.mark.parametrize("api_key", [None, ""])
    def test_missing_key_fails_before_network(self, kind, api_key, fake_session, snapshot):
        adapter = make_adapter(kind, fake_session, api_key=api_key)

        with pytest.raises(MissingCredential) as excinfo:
            adapter.analyze(snapshot)
        with pytest.raises(MissingCredential):
            adapter.generate_interface_code("a clock face")

        assert excinfo.value.provider_kind is kind
        assert len(fake_session.calls) == 0


class TestWireFormats:
    def _post(self, session):
        assert len(session.calls) == 1
        method, url, kwargs = session.calls[0]
        assert method == "POST"
        return url, kwargs

    def test_openai_request(self, fake_session, snapshot):
        fake_session.route("POST", "/v1/chat/completions", FakeResponse(200, OPENAI_REPLY))
        adapter = make_adapter(ProviderKind.OPENAI, fake_session)

        assert adapter.analyze(snapshot) == "openai says hi"

        url, kwargs = self._post(fake_session)
        assert url == "https://api.openai.com/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["timeout"] == 60.0
        content = kwargs["json"]["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": ANALYSIS_PROMPT}
        expected_b64 = base64.b64encode(snapshot.image_bytes).decode("ascii")
        assert content[1]["image_url"]["url"] == f"data:image/jpeg;base64,{expected_b64}"
        assert kwargs["json"]["max_tokens"] == 500

    def test_anthropic_request(self, fake_session, snapshot):
        fake_session.route("POST", "/v1/messages", FakeResponse(200, ANTHROPIC_REPLY))
        adapter = make_adapter(ProviderKind.ANTHROPIC, fake_session)

        assert adapter.analyze(snapshot) == "anthropic says hi"

        url, kwargs = self._post(fake_session)
        assert url == "https://api.anthropic.com/v1/messages"
        assert kwargs["headers"]["x-api-key"] == "sk-test"
        assert kwargs["headers"]["anthropic-version"] == "2023-06-01"
        assert "Authorization" not in kwargs["headers"]
        image_block = kwargs["json"]["messages"][0]["content"][1]
        assert image_block["type"] == "image"
        assert image_block["source"]["media_type"] == "image/jpeg"
        assert base64.b64decode(image_block["source"]["data"]) == snapshot.image_bytes

    def test_google_request(self, fake_session, snapshot):
        fake_session.route("POST", ":generateContent", FakeResponse(200, GOOGLE_REPLY))
        adapter = make_adapter(ProviderKind.GOOGLE, fake_session, model="gemini-test")

        assert adapter.analyze(snapshot) == "gemini says hi"

        url, kwargs = self._post(fake_session)
        assert url == (
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-test:generateContent"
        )
        assert "sk-test" not in url
        assert kwargs["headers"]["x-goog-api-key"] == "sk-test"
        parts = kwargs["json"]["contents"][0]["parts"]
        assert parts[0] == {"text": ANALYSIS_PROMPT}
        assert parts[1]["inline_data"]["mime_type"] == "image/jpeg"
        assert base64.b64decode(parts[1]["inline_data"]["data"]) == snapshot.image_bytes

    @pytest.mark.parametrize("kind", EXTERNAL_KINDS)
    def test_code_generation_uses_code_prompt(self, kind, fake_session):
        path, reply, text = ROUTES[kind]
        fake_session.route("POST", path, FakeResponse(200, reply))
        adapter = make_adapter(kind, fake_session)

        assert adapter.generate_interface_code("a battery gauge") == text

        _, kwargs = self._post(fake_session)
        body = str(kwargs["json"])
        assert "a battery gauge" in body
        assert "LVGL version 8.x" in body
        assert "base64" not in body
        assert "image" not in body

    def test_bodies_are_provider_specific(self, snapshot):
        payload = ImagePayload.from_snapshot(snapshot)
        openai_body = OpenAIBackend("k")._vision_body(payload, "p")
        anthropic_body = AnthropicBackend("k")._vision_body(payload, "p")
        google_body = GeminiBackend("k")._vision_body(payload, "p")

        assert "messages" in openai_body and "contents" not in openai_body
        assert "messages" in anthropic_body and "max_tokens" in anthropic_body
        assert "contents" in google_body and "messages" not in google_body
        assert openai_body["messages"][0]["content"][1]["type"] == "image_url"
        assert anthropic_body["messages"][0]["content"][1]["type"] == "image"


class TestFailures:
    @pytest.mark.parametrize("kind", EXTERNAL_KINDS)
    def test_non_2xx_is_backend_error(self, kind, fake_session, snapshot):
        path, _, _ = ROUTES[kind]
        fake_session.route("POST", path, FakeResponse(429, {"error": "rate limited"}))
        adapter = make_adapter(kind, fake_session)

        with pytest.raises(BackendError) as excinfo:
            adapter.analyze(snapshot)

        assert excinfo.value.provider_kind is kind
        assert "429" in excinfo.value.detail
        assert len(fake_session.calls) == 1

    @pytest.mark.parametrize("kind", EXTERNAL_KINDS)
    def test_transport_failure_is_backend_error(self, kind, fake_session, snapshot):
        path, _, _ = ROUTES[kind]
        fake_session.route("POST", path, requests.exceptions.Timeout("read timed out"))
        adapter = make_adapter(kind, fake_session)

        with pytest.raises(BackendError):
            adapter.analyze(snapshot)
        assert len(fake_session.calls) == 1

    @pytest.mark.parametrize("kind", EXTERNAL_KINDS)
    def test_foreign_response_shape_is_backend_error(self, kind, fake_session, snapshot):
        path, _, _ = ROUTES[kind]
        fake_session.route("POST", path, FakeResponse(200, {"unexpected": True}))
        adapter = make_adapter(kind, fake_session)

        with pytest.raises(BackendError):
            adapter.analyze(snapshot)

    def test_non_json_body_is_backend_error(self, fake_session, snapshot):
        fake_session.route("POST", "/v1/messages", FakeResponse(200, text="<html>"))
        adapter = make_adapter(ProviderKind.ANTHROPIC, fake_session)

        with pytest.raises(BackendError):
            adapter.analyze(snapshot)
