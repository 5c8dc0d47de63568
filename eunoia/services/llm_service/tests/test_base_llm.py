"""Tests for LLM clients."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from eunoia.services.llm_service.base_llm import (
    HuggingFaceLLM,
    LLMConfig,
    LLMProvider,
    OpenAILLM,
    create_llm,
)


def openai_config(**overrides):
    values = dict(
        provider=LLMProvider.OPENAI,
        model_name="gpt-4o-mini",
        api_key="sk-test",
        endpoint="https://api.aimlapi.com/v1",
    )
    values.update(overrides)
    return LLMConfig(**values)


class TestCreateLLM:

    def test_openai(self):
        with patch("openai.AsyncOpenAI") as client_cls:
            llm = create_llm(openai_config())

        assert isinstance(llm, OpenAILLM)
        client_cls.assert_called_once_with(
            api_key="sk-test",
            base_url="https://api.aimlapi.com/v1",
            timeout=30,
        )

    def test_openai_requires_key(self):
        with pytest.raises(ValueError):
            create_llm(openai_config(api_key=None))

    def test_huggingface(self):
        llm = create_llm(LLMConfig(
            provider=LLMProvider.HUGGINGFACE,
            model_name="mistral",
            endpoint="https://hf.example/models/mistral",
            api_key="hf_token",
        ))

        assert isinstance(llm, HuggingFaceLLM)
        assert llm.headers == {"Authorization": "Bearer hf_token"}

    def test_huggingface_requires_endpoint(self):
        with pytest.raises(ValueError):
            create_llm(LLMConfig(provider=LLMProvider.HUGGINGFACE, model_name="m"))


class TestValidatePrompt:

    @pytest.fixture
    def llm(self):
        with patch("openai.AsyncOpenAI"):
            return OpenAILLM(openai_config())

    def test_blank(self, llm):
        assert llm.validate_prompt("   ") is False

    def test_too_long(self, llm):
        assert llm.validate_prompt("x" * 10001) is False

    def test_ok(self, llm):
        assert llm.validate_prompt("hello") is True


class TestOpenAIGenerate:

    @pytest.mark.asyncio
    async def test_builds_chat_messages(self):
        completion = MagicMock()
        completion.choices[0].message.content = "  I'm here for you.  "
        completion.usage.total_tokens = 42

        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.chat.completions.create = AsyncMock(return_value=completion)
            llm = OpenAILLM(openai_config())

            response = await llm.generate(
                "I had a long day",
                system_prompt="You are Dr. Emma",
                history=[{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
            )

        assert response.text == "I'm here for you."
        assert response.tokens_used == 42
        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages == [
            {"role": "system", "content": "You are Dr. Emma"},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "I had a long day"},
        ]

    @pytest.mark.asyncio
    async def test_invalid_prompt_raises(self):
        with patch("openai.AsyncOpenAI"):
            llm = OpenAILLM(openai_config())

        with pytest.raises(ValueError):
            await llm.generate("")


class TestHuggingFacePrompt:

    def test_format_prompt(self):
        text = HuggingFaceLLM.format_prompt(
            "I can't sleep",
            system_prompt="You are Dr. Maya",
            history=[{"role": "user", "content": "hi"}, {"role": "assistant", "content": "welcome"}],
        )

        assert text == (
            "You are Dr. Maya\n\nClient: hi\n\nTherapist: welcome\n\n"
            "Client: I can't sleep\n\nTherapist:"
        )
