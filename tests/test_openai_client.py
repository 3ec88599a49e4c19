import pytest
from unittest.mock import patch

from listing_pipeline.clients import openai_client as openai_client_module


@pytest.fixture(autouse=True)
def reset_openai_singleton():
    openai_client_module.OpenAIClient._instance = None
    openai_client_module.OpenAIClient._initialized = False
    yield
    openai_client_module.OpenAIClient._instance = None
    openai_client_module.OpenAIClient._initialized = False


def test_missing_api_key_raises():
    with patch.object(openai_client_module, "OPENAI_API_KEY", ""):
        with pytest.raises(ValueError):
            openai_client_module.OpenAIClient()


def test_client_uses_configured_key():
    with patch.object(openai_client_module, "OPENAI_API_KEY", "sk-test"), \
         patch.object(openai_client_module, "AsyncOpenAI") as mock_openai:
        first = openai_client_module.OpenAIClient()
        second = openai_client_module.OpenAIClient()

    assert first is second
    mock_openai.assert_called_once_with(api_key="sk-test")
