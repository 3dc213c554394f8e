import asyncio
import time
from types import SimpleNamespace

import pytest

from tripplanner.core.llm_provider import LLMProvider


class StubCompletions:
    def __init__(self, content):
        self.content = content
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class StubGenaiModel:
    def __init__(self, text):
        self.text = text
        self.calls = []

    def generate_content(self, prompt, generation_config=None):
        self.calls.append((prompt, generation_config))
        return SimpleNamespace(text=self.text)


def make_provider(model="openai:gpt-4.1-mini", client=None, genai_model=None):
    provider = LLMProvider.__new__(LLMProvider)
    provider.model = model
    provider._client = client
    provider._genai_model = genai_model
    return provider


def test_generate_sends_single_user_message():
    completions = StubCompletions('{"places": []}')
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    provider = make_provider(client=client)

    assert provider.generate("Plan a trip", temperature=0.3) == '{"places": []}'
    assert completions.calls == [
        {
            "model": "openai:gpt-4.1-mini",
            "messages": [{"role": "user", "content": "Plan a trip"}],
            "temperature": 0.3,
        }
    ]


def test_generate_returns_empty_string_for_empty_content():
    client = SimpleNamespace(chat=SimpleNamespace(completions=StubCompletions(None)))
    assert make_provider(client=client).generate("Plan a trip") == ""


def test_generate_routes_to_genai_model():
    genai_model = StubGenaiModel("Day 1: Tirumala")
    provider = make_provider(model="google-genai:gemini-1.5-flash", genai_model=genai_model)

    assert provider.generate("Plan a trip", temperature=0.5) == "Day 1: Tirumala"
    assert genai_model.calls == [("Plan a trip", {"temperature": 0.5})]


@pytest.mark.asyncio
async def test_generate_async_times_out():
    provider = make_provider()
    provider.generate = lambda prompt, temperature: time.sleep(0.5) or "late"

    with pytest.raises(asyncio.TimeoutError):
        await provider.generate_async("Plan a trip", timeout=0.05)


@pytest.mark.asyncio
async def test_generate_async_without_timeout():
    provider = make_provider()
    provider.generate = lambda prompt, temperature: f"{prompt}@{temperature}"

    assert await provider.generate_async("hi", temperature=0.2) == "hi@0.2"
