import json

import pytest

from voxly.errors import AllCandidatesExhaustedError, InvalidInputError
from voxly.llm import LLMAgent
from voxly.llm.fallback import AllProviders, OnlyProvider

OPENAI_URL = "https://openai.test/v1/chat/completions"
GEMINI_URL = "https://gemini.test/v1beta/models/{model}:generateContent"


def gemini_answer(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def openai_answer(text):
    return {"choices": [{"message": {"content": text}}]}


@pytest.fixture
async def agent():
    async with LLMAgent.from_settings() as agent:
        yield agent


@pytest.mark.asyncio
async def test_agent_from_settings(agent):
    assert list(agent.providers) == ["gemini", "openai"]
    assert agent.provider_order == ["gemini", "openai"]
    assert agent.default_selection == AllProviders()
    assert [(c.provider, c.model) for c in agent.candidates()] == [
        ("gemini", "gemini-2.5-flash"),
        ("openai", "gpt-4o-mini"),
    ]


@pytest.mark.asyncio
async def test_agent_candidates_pinned_with_model(agent):
    candidates = agent.candidates(OnlyProvider("openai"), model="gpt-4.1")
    assert [(c.provider, c.model) for c in candidates] == [("openai", "gpt-4.1")]


@pytest.mark.asyncio
async def test_agent_candidates_unknown_provider(agent):
    with pytest.raises(InvalidInputError):
        agent.candidates(OnlyProvider("mistral"))


@pytest.mark.asyncio
async def test_agent_summarize_falls_back_to_openai(httpx_mock, agent, summary_ok):
    httpx_mock.add_response(
        url=GEMINI_URL.format(model="gemini-2.5-flash"),
        method="POST",
        status_code=500,
        json={"error": {"status": "INTERNAL"}},
    )
    httpx_mock.add_response(
        url=OPENAI_URL, method="POST", json=openai_answer(json.dumps(summary_ok))
    )

    summary = await agent.summarize_transcript("We ship Friday.", template="brainstorm")
    assert summary == summary_ok
    assert len(httpx_mock.get_requests()) == 2


@pytest.mark.asyncio
async def test_agent_summarize_pinned_provider_does_not_fall_back(httpx_mock, agent):
    httpx_mock.add_response(url=OPENAI_URL, method="POST", status_code=429)

    with pytest.raises(AllCandidatesExhaustedError) as excinfo:
        await agent.summarize_transcript(
            "We ship Friday.", selection=OnlyProvider("openai")
        )
    assert excinfo.value.provider == "openai"
    assert excinfo.value.rate_limited is True
    assert len(httpx_mock.get_requests()) == 1


@pytest.mark.asyncio
async def test_agent_summarize_requires_transcript(httpx_mock, agent):
    with pytest.raises(InvalidInputError):
        await agent.summarize_transcript("   ")
    assert httpx_mock.get_requests() == []


@pytest.mark.asyncio
async def test_agent_apply_summary_edit(httpx_mock, agent):
    edited = {"decisions": ["Ship on Monday"], "keyPoints": "oops"}
    httpx_mock.add_response(
        url=GEMINI_URL.format(model="gemini-2.5-flash"),
        method="POST",
        json=gemini_answer(json.dumps(edited)),
    )

    summary = await agent.apply_summary_edit(
        {"decisions": ["Ship on Friday"]}, "move the ship date to Monday"
    )
    assert summary == {
        "decisions": ["Ship on Monday"],
        "keyPoints": [],
        "nextSteps": [],
        "actionItems": [],
    }


@pytest.mark.asyncio
async def test_agent_apply_summary_edit_requires_instruction(agent):
    with pytest.raises(InvalidInputError):
        await agent.apply_summary_edit({}, "")


@pytest.mark.asyncio
async def test_agent_apply_chat(httpx_mock, agent):
    httpx_mock.add_response(
        url=GEMINI_URL.format(model="gemini-2.5-pro"),
        method="POST",
        json=gemini_answer(" Sam does. "),
    )

    answer = await agent.apply_chat(
        [{"role": "user", "content": "Who writes the notes?"}],
        {},
        selection=OnlyProvider("gemini"),
        model="gemini-2.5-pro",
    )
    assert answer == "Sam does."


@pytest.mark.asyncio
async def test_agent_apply_chat_requires_messages(httpx_mock, agent):
    with pytest.raises(InvalidInputError):
        await agent.apply_chat([{"role": "user", "content": "  "}], {})
    assert httpx_mock.get_requests() == []
