"""Tests for docvision.vision_client (mocked OpenAI client)."""

from __future__ import annotations

import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import openai

from docvision.schema import Page
from docvision.utils import ExternalCapabilityError
from docvision.vision_client import VisionClient


def _response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _page(n: int = 1) -> Page:
    return Page(data=b"\xff\xd8fakejpeg", width=10, height=10, page_number=n)


def _client(side_effect=None, return_value=None, max_retries: int = 2) -> tuple[VisionClient, MagicMock]:
    mock = MagicMock()
    if side_effect is not None:
        mock.chat.completions.create.side_effect = side_effect
    else:
        mock.chat.completions.create.return_value = return_value
    return VisionClient(api_key="test", max_retries=max_retries, retry_backoff=0, client=mock), mock


def _connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions"))


class TestExtractContent(unittest.TestCase):
    def test_sends_instruction_and_pages(self) -> None:
        client, mock = _client(return_value=_response("Question 1: x = 2"))
        text = client.extract_content([_page(1), _page(2)], instruction="Read this")
        self.assertEqual(text, "Question 1: x = 2")
        kwargs = mock.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], client.vision_model)
        parts = kwargs["messages"][0]["content"]
        self.assertEqual(parts[0], {"type": "text", "text": "Read this"})
        self.assertEqual(len(parts), 3)
        self.assertTrue(parts[1]["image_url"]["url"].startswith("data:image/jpeg;base64,"))

    def test_no_pages(self) -> None:
        client, _ = _client(return_value=_response("x"))
        with self.assertRaises(ValueError):
            client.extract_content([])

    def test_content_parts_joined(self) -> None:
        client, _ = _client(return_value=_response([{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]))
        self.assertEqual(client.complete("hi"), "ab")


class TestEnvelopeErrors(unittest.TestCase):
    def test_no_choices(self) -> None:
        client, _ = _client(return_value=SimpleNamespace(choices=[]))
        with self.assertRaises(ExternalCapabilityError) as ctx:
            client.complete("hi")
        self.assertEqual(ctx.exception.reason, ExternalCapabilityError.INVALID_ENVELOPE)

    def test_missing_message(self) -> None:
        client, _ = _client(return_value=SimpleNamespace(choices=[SimpleNamespace(message=None)]))
        with self.assertRaises(ExternalCapabilityError) as ctx:
            client.complete("hi")
        self.assertEqual(ctx.exception.reason, ExternalCapabilityError.INVALID_ENVELOPE)

    def test_empty_content(self) -> None:
        for content in (None, "", "   "):
            with self.subTest(content=content):
                client, _ = _client(return_value=_response(content))
                with self.assertRaises(ExternalCapabilityError) as ctx:
                    client.complete("hi")
                self.assertEqual(ctx.exception.reason, ExternalCapabilityError.EMPTY_CONTENT)


class TestRetries(unittest.TestCase):
    def test_transient_error_retried(self) -> None:
        client, mock = _client(side_effect=[_connection_error(), _response('{"score": 1}')])
        self.assertEqual(client.complete("hi", temperature=0.2), '{"score": 1}')
        self.assertEqual(mock.chat.completions.create.call_count, 2)
        self.assertEqual(mock.chat.completions.create.call_args.kwargs["temperature"], 0.2)

    def test_retries_exhausted(self) -> None:
        client, mock = _client(side_effect=_connection_error(), max_retries=1)
        with self.assertRaises(ExternalCapabilityError) as ctx:
            client.complete("hi")
        self.assertEqual(ctx.exception.reason, ExternalCapabilityError.NO_RESPONSE)
        self.assertEqual(mock.chat.completions.create.call_count, 2)
        self.assertIsInstance(ctx.exception.__cause__, openai.APIConnectionError)

    def test_auth_error_not_retried(self) -> None:
        request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
        error = openai.AuthenticationError(
            "bad key", response=httpx.Response(401, request=request), body=None
        )
        client, mock = _client(side_effect=error)
        with self.assertRaises(ExternalCapabilityError) as ctx:
            client.complete("hi")
        self.assertEqual(ctx.exception.reason, ExternalCapabilityError.NO_RESPONSE)
        self.assertEqual(mock.chat.completions.create.call_count, 1)


class TestConnection(unittest.TestCase):
    def test_ok(self) -> None:
        client, mock = _client(return_value=None)
        self.assertTrue(client.test_connection())
        mock.models.list.assert_called_once()

    def test_failure(self) -> None:
        client, mock = _client(return_value=None)
        mock.models.list.side_effect = _connection_error()
        self.assertFalse(client.test_connection())


class TestFromEnv(unittest.TestCase):
    @patch("docvision.vision_client.OPENROUTER_API_KEY", "")
    @patch("docvision.vision_client.openai.OpenAI")
    def test_warns_without_key(self, mock_openai: MagicMock) -> None:
        with self.assertLogs("docvision.vision_client", level="WARNING"):
            VisionClient.from_env()
        mock_openai.assert_called_once()


if __name__ == "__main__":
    unittest.main()
