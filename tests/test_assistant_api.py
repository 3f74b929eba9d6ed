import pytest
from httpx import ASGITransport, AsyncClient

from voxly.llm import LLMAgent
from voxly.views.assistant import get_llm_agent


@pytest.fixture
def providers(scripted_provider):
    return {
        "gemini": scripted_provider(
            "gemini",
            {
                "g1": {
                    "decisions": ["Ship on Monday"],
                    "keyPoints": [],
                    "nextSteps": [],
                    "actionItems": [],
                }
            },
        ),
        "openai": scripted_provider("openai", {"o1": "Sam owns the notes."}),
    }


@pytest.fixture
async def client(providers):
    from voxly.app import app

    app.dependency_overrides[get_llm_agent] = lambda: LLMAgent(providers)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test/v1"
    ) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_app_lifespan_creates_agent():
    from asgi_lifespan import LifespanManager

    from voxly.app import app

    async with LifespanManager(app) as manager:
        agent = manager.app.state.llm_agent
        assert isinstance(agent, LLMAgent)
        assert list(agent.providers) == ["gemini", "openai"]
        async with AsyncClient(
            transport=ASGITransport(app=manager.app), base_url="http://test"
        ) as client:
            response = await client.get("/health")
            assert response.json() == {"status": "healthy"}
    assert agent.client.is_closed


@pytest.mark.asyncio
async def test_assistant_edit(client, providers):
    response = await client.post(
        "/assistant",
        json={
            "prompt": "  move the ship date to Monday ",
            "summary": {"decisions": ["Ship on Friday"]},
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "summary": {
            "decisions": ["Ship on Monday"],
            "keyPoints": [],
            "nextSteps": [],
            "actionItems": [],
        },
    }
    assert providers["gemini"].calls == [("edit_summary", "g1")]


@pytest.mark.asyncio
async def test_assistant_edit_requires_prompt(client, providers):
    response = await client.post("/assistant", json={"prompt": "  ", "summary": {}})

    assert response.status_code == 400
    assert providers["gemini"].calls == []


@pytest.mark.asyncio
async def test_assistant_edit_unknown_pinned_provider(client, providers):
    response = await client.post(
        "/assistant",
        json={"prompt": "shorten", "summary": {}, "provider": "mistral-only"},
    )

    assert response.status_code == 400
    assert providers["gemini"].calls == []


@pytest.mark.asyncio
async def test_assistant_chat_pinned_provider(client, providers):
    response = await client.post(
        "/assistant/chat",
        json={
            "messages": [{"role": "user", "content": "Who owns the notes?"}],
            "summary": "not an object",
            "provider": "openai-only",
        },
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True, "message": "Sam owns the notes."}
    assert providers["gemini"].calls == []
    assert providers["openai"].calls == [("chat", "o1")]


@pytest.mark.asyncio
async def test_assistant_chat_all_providers_fail(
    client, providers, provider_error, rate_limited_error
):
    providers["gemini"].script["g1"] = rate_limited_error("gemini", "g1")
    providers["openai"].script["o1"] = provider_error("openai", "o1", 500)

    response = await client.post(
        "/assistant/chat",
        json={"messages": [{"role": "user", "content": "Anything new?"}]},
    )

    assert response.status_code == 502
    assert providers["gemini"].calls == [("chat", "g1")]
    assert providers["openai"].calls == [("chat", "o1")]


@pytest.mark.asyncio
async def test_assistant_chat_requires_messages(client):
    response = await client.post("/assistant/chat", json={"messages": []})

    assert response.status_code == 400
