"""
Tests for app/openrouter_client.py – OpenRouter HTTP wrapper (mocked).

``chat_completion`` hands back the raw response whatever its status, so
these tests check the outgoing request (URL, headers, body) rather than
error raising.  The model-listing helpers are checked for normalisation and
for graceful degradation when OpenRouter is unreachable.
"""

from __future__ import annotations

import logging
from unittest.mock import patch

import httpx
import pytest

from app.openrouter_client import (
    chat_completion,
    extract_message_content,
    fetch_models,
    list_available_model_ids,
    resolve_referer,
)


def _enter_client(mock_client_cls) -> None:
    mock_client_cls.return_value.__enter__ = lambda s: s
    mock_client_cls.return_value.__exit__ = lambda s, *a: None


# ── chat_completion ──────────────────────────────────────────────────────────


class TestChatCompletion:
    def _mock_response(self, json_data: dict, status_code: int = 200) -> httpx.Response:
        return httpx.Response(
            status_code=status_code,
            json=json_data,
            request=httpx.Request("POST", "http://test/chat/completions"),
        )

    def test_posts_system_and_user_messages(self) -> None:
        mock_resp = self._mock_response({"choices": []})

        with patch("app.openrouter_client.httpx.Client") as mock_client_cls:
            _enter_client(mock_client_cls)
            mock_client_cls.return_value.post.return_value = mock_resp

            chat_completion(
                model="deepseek/deepseek-r1:free",
                system_prompt="You are a curriculum designer.",
                user_prompt="Topic: Rust",
            )

            call_args = mock_client_cls.return_value.post.call_args
            body = call_args.kwargs["json"]

        assert body["model"] == "deepseek/deepseek-r1:free"
        assert body["messages"] == [
            {"role": "system", "content": "You are a curriculum designer."},
            {"role": "user", "content": "Topic: Rust"},
        ]
        assert body["temperature"] == 0.7
        assert body["response_format"] == {"type": "json_object"}

    def test_url_and_headers(self) -> None:
        mock_resp = self._mock_response({"choices": []})

        with (
            patch("app.openrouter_client.httpx.Client") as mock_client_cls,
            patch("app.openrouter_client.OPENROUTER_API_KEY", "sk-test"),
            patch("app.openrouter_client.OPENROUTER_BASE_URL", "https://router.test/api/v1"),
        ):
            _enter_client(mock_client_cls)
            mock_client_cls.return_value.post.return_value = mock_resp

            chat_completion(
                model="m",
                system_prompt="sp",
                user_prompt="up",
                referer="https://roadmaps.example.com",
            )

            call_args = mock_client_cls.return_value.post.call_args

        assert call_args[0][0] == "https://router.test/api/v1/chat/completions"
        headers = call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer sk-test"
        assert headers["HTTP-Referer"] == "https://roadmaps.example.com"
        assert headers["X-Title"] == "AI Roadmap Generator"

    def test_error_status_is_returned_not_raised(self) -> None:
        """The fallback loop needs the status code, so no raise_for_status here."""
        mock_resp = httpx.Response(
            status_code=429,
            text="rate limited",
            request=httpx.Request("POST", "http://test/chat/completions"),
        )

        with patch("app.openrouter_client.httpx.Client") as mock_client_cls:
            _enter_client(mock_client_cls)
            mock_client_cls.return_value.post.return_value = mock_resp

            response = chat_completion(model="m", system_prompt="sp", user_prompt="up")

        assert response.status_code == 429
        assert response.text == "rate limited"

    def test_transport_error_propagates(self) -> None:
        with patch("app.openrouter_client.httpx.Client") as mock_client_cls:
            _enter_client(mock_client_cls)
            mock_client_cls.return_value.post.side_effect = httpx.ConnectError("refused")

            with pytest.raises(httpx.ConnectError):
                chat_completion(model="m", system_prompt="sp", user_prompt="up")


# ── extract_message_content ──────────────────────────────────────────────────


class TestExtractMessageContent:
    def test_returns_content(self) -> None:
        data = {"choices": [{"message": {"content": '{"title": "x"}'}}]}
        assert extract_message_content(data) == '{"title": "x"}'

    @pytest.mark.parametrize(
        "data",
        [
            None,
            [],
            {},
            {"choices": []},
            {"choices": ["oops"]},
            {"choices": [{}]},
            {"choices": [{"message": None}]},
            {"choices": [{"message": {"content": None}}]},
        ],
    )
    def test_malformed_bodies_yield_empty_string(self, data) -> None:
        assert extract_message_content(data) == ""


# ── resolve_referer ──────────────────────────────────────────────────────────


class TestResolveReferer:
    def test_app_url_wins(self) -> None:
        with patch("app.openrouter_client.APP_URL", "https://app.test"):
            assert resolve_referer({"origin": "http://other"}) == "https://app.test"

    def test_forwarded_host_with_proto(self) -> None:
        with patch("app.openrouter_client.APP_URL", None):
            headers = {"x-forwarded-host": "proxy.test", "x-forwarded-proto": "http"}
            assert resolve_referer(headers) == "http://proxy.test"

    def test_forwarded_host_defaults_to_https(self) -> None:
        with patch("app.openrouter_client.APP_URL", None):
            assert resolve_referer({"x-forwarded-host": "proxy.test"}) == "https://proxy.test"

    def test_origin_header(self) -> None:
        with patch("app.openrouter_client.APP_URL", None):
            assert resolve_referer({"origin": "http://localhost:8000"}) == "http://localhost:8000"

    def test_default(self) -> None:
        with patch("app.openrouter_client.APP_URL", None):
            assert resolve_referer({}) == "http://localhost:3000"
            assert resolve_referer(None) == "http://localhost:3000"


# ── fetch_models / list_available_model_ids ──────────────────────────────────


class TestFetchModels:
    def _mock_response(self, json_data: dict, status_code: int = 200) -> httpx.Response:
        return httpx.Response(
            status_code=status_code,
            json=json_data,
            request=httpx.Request("GET", "http://test/models"),
        )

    def test_normalises_entries(self) -> None:
        mock_resp = self._mock_response(
            {
                "data": [
                    {
                        "id": "a/one:free",
                        "name": "One",
                        "pricing": {"prompt": "0"},
                        "context_length": 8192,
                        "architecture": {"modality": "text"},
                    },
                    {"id": "b/two"},
                    {"name": "no id"},
                ]
            }
        )

        with patch("app.openrouter_client.httpx.Client") as mock_client_cls:
            _enter_client(mock_client_cls)
            mock_client_cls.return_value.get.return_value = mock_resp

            models = fetch_models()

        assert models == [
            {
                "id": "a/one:free",
                "name": "One",
                "pricing": {"prompt": "0"},
                "context_length": 8192,
            },
            {"id": "b/two", "name": "b/two", "pricing": {}, "context_length": None},
        ]

    def test_missing_data_key_returns_empty(self) -> None:
        mock_resp = self._mock_response({"object": "list"})

        with patch("app.openrouter_client.httpx.Client") as mock_client_cls:
            _enter_client(mock_client_cls)
            mock_client_cls.return_value.get.return_value = mock_resp

            assert fetch_models() == []

    def test_http_error_raises(self) -> None:
        mock_resp = httpx.Response(
            status_code=401,
            text="bad key",
            request=httpx.Request("GET", "http://test/models"),
        )

        with patch("app.openrouter_client.httpx.Client") as mock_client_cls:
            _enter_client(mock_client_cls)
            mock_client_cls.return_value.get.return_value = mock_resp

            with pytest.raises(httpx.HTTPStatusError):
                fetch_models()


class TestListAvailableModelIds:
    def test_returns_ids(self) -> None:
        with patch(
            "app.openrouter_client.fetch_models",
            return_value=[{"id": "a"}, {"id": "b"}],
        ):
            assert list_available_model_ids() == ["a", "b"]

    def test_connection_error_returns_empty_and_logs(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with patch("app.openrouter_client.httpx.Client") as mock_client_cls:
            _enter_client(mock_client_cls)
            mock_client_cls.return_value.get.side_effect = httpx.ConnectError("connection refused")

            with caplog.at_level(logging.WARNING, logger="app.openrouter_client"):
                result = list_available_model_ids()

        assert result == []
        assert len(caplog.records) == 1
        assert "ConnectError" in caplog.records[0].message
        assert "connection refused" in caplog.records[0].message

    def test_http_error_returns_empty(self, caplog: pytest.LogCaptureFixture) -> None:
        mock_resp = httpx.Response(
            status_code=500,
            text="internal server error",
            request=httpx.Request("GET", "http://test/models"),
        )

        with patch("app.openrouter_client.httpx.Client") as mock_client_cls:
            _enter_client(mock_client_cls)
            mock_client_cls.return_value.get.return_value = mock_resp

            with caplog.at_level(logging.WARNING, logger="app.openrouter_client"):
                assert list_available_model_ids() == []

        assert "HTTPStatusError" in caplog.records[0].message
