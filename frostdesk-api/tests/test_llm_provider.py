from unittest.mock import MagicMock, Mock, patch

import pytest

from app.services.draft_service import LLMDraftGenerator
from app.services.llm import LLMError, LLMResponse, OpenAIProvider


def _mock_client(mock_client_class, status_code=200, data=None):
    mock_client = MagicMock()
    mock_client_class.return_value.__enter__.return_value = mock_client
    mock_response = Mock()
    mock_response.status_code = status_code
    mock_response.text = "error body"
    mock_response.json.return_value = data or {}
    mock_client.post.return_value = mock_response
    return mock_client


class TestOpenAIProvider:
    @patch("app.services.llm.openai_provider.httpx.Client")
    def test_generate(self, mock_client_class):
        mock_client = _mock_client(
            mock_client_class,
            data={"model": "gpt-5-mini", "choices": [{"message": {"content": "hi"}}], "usage": {"total_tokens": 5}},
        )

        response = OpenAIProvider("key").generate([{"role": "user", "content": "hello"}], json_mode=True)

        assert response.content == "hi"
        assert response.usage == {"total_tokens": 5}
        payload = mock_client.post.call_args[1]["json"]
        assert payload["response_format"] == {"type": "json_object"}
        assert mock_client.post.call_args[1]["headers"]["Authorization"] == "Bearer key"

    @patch("app.services.llm.openai_provider.httpx.Client")
    def test_non_200_raises(self, mock_client_class):
        _mock_client(mock_client_class, status_code=429)

        with pytest.raises(LLMError) as exc_info:
            OpenAIProvider("key").generate([])
        assert exc_info.value.status_code == 429


class TestLLMDraftGenerator:
    def test_success(self):
        provider = Mock()
        provider.generate.return_value = LLMResponse(content=" The instructor will reply. ", model="m")

        result = LLMDraftGenerator(provider).generate("conv-1", "Can I book a lesson?")

        assert result.ok
        assert result.value.text == "The instructor will reply."
        messages = provider.generate.call_args[0][0]
        assert messages[0]["role"] == "system"
        assert messages[-1] == {"role": "user", "content": "Can I book a lesson?"}

    def test_provider_error_is_failure(self):
        provider = Mock()
        provider.generate.side_effect = LLMError("OpenAI API error: 500", status_code=500)

        result = LLMDraftGenerator(provider).generate("conv-1", "hi")

        assert result.error_code == "llm_error"

    def test_empty_message(self):
        assert LLMDraftGenerator(Mock()).generate("conv-1", "  ").error_code == "empty_message"
