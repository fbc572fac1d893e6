"""Tests for the HuggingFace chat-completion gateway."""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from trialfinder.errors import CompletionError
from trialfinder.models.base import ChatMessage, CompletionOptions
from trialfinder.models.medgemma import HFChatGateway

MESSAGES = [
    ChatMessage(role="system", content="sys"),
    ChatMessage(role="user", content="Transcript"),
]


def _chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@patch("trialfinder.models.medgemma.InferenceClient")
def test_hf_complete_passes_messages_and_schema(mock_client_cls):
    mock_client = MagicMock()
    mock_client.chat_completion.return_value = _chat_response('{"ok": true}')
    mock_client_cls.return_value = mock_client

    gateway = HFChatGateway(endpoint_url="https://example.endpoints.huggingface.cloud")
    schema = {"type": "object"}
    text = asyncio.run(
        gateway.complete(MESSAGES, CompletionOptions(model="m", temperature=0.1, response_schema=schema))
    )

    assert text == '{"ok": true}'
    kwargs = mock_client.chat_completion.call_args.kwargs
    assert kwargs["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "Transcript"},
    ]
    assert kwargs["temperature"] == 0.1
    assert kwargs["response_format"] == {"type": "json", "value": schema}


@patch("trialfinder.models.medgemma.InferenceClient")
def test_hf_complete_without_schema_has_no_response_format(mock_client_cls):
    mock_client = MagicMock()
    mock_client.chat_completion.return_value = _chat_response("text")
    mock_client_cls.return_value = mock_client

    gateway = HFChatGateway(endpoint_url="https://example")
    asyncio.run(gateway.complete(MESSAGES, CompletionOptions(model="m")))
    assert "response_format" not in mock_client.chat_completion.call_args.kwargs


@patch("trialfinder.models.medgemma.InferenceClient")
def test_hf_empty_content_raises(mock_client_cls):
    mock_client = MagicMock()
    mock_client.chat_completion.return_value = _chat_response("")
    mock_client_cls.return_value = mock_client

    gateway = HFChatGateway(endpoint_url="https://example")
    with pytest.raises(CompletionError):
        asyncio.run(gateway.complete(MESSAGES, CompletionOptions(model="m")))


@patch("trialfinder.models.medgemma.InferenceClient")
def test_hf_transport_error_wrapped(mock_client_cls):
    mock_client = MagicMock()
    mock_client.chat_completion.side_effect = ConnectionError("endpoint cold")
    mock_client_cls.return_value = mock_client

    gateway = HFChatGateway(endpoint_url="https://example")
    with pytest.raises(CompletionError, match="endpoint cold"):
        asyncio.run(gateway.complete(MESSAGES, CompletionOptions(model="m")))
