from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field, field_validator

from voxly.errors import AllCandidatesExhaustedError, InvalidInputError
from voxly.llm import LLMAgent
from voxly.llm.fallback import parse_provider_selection
from voxly.logger import logger

router = APIRouter()


def get_llm_agent(request: Request) -> LLMAgent:
    return request.app.state.llm_agent


class AssistantRequest(BaseModel):
    summary: Any = None
    provider: str | None = None
    model: str | None = None

    @field_validator("summary")
    @classmethod
    def summary_object(cls, value: Any) -> dict:
        return value if isinstance(value, dict) else {}


class AssistantEditRequest(AssistantRequest):
    prompt: str = ""


class AssistantChatRequest(AssistantRequest):
    messages: list[Any] = Field(default_factory=list)


class AssistantEditResponse(BaseModel):
    ok: bool = True
    summary: dict


class AssistantChatResponse(BaseModel):
    ok: bool = True
    message: str


async def run_assistant(coro_factory, operation: str):
    try:
        return await coro_factory()
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AllCandidatesExhaustedError as e:
        logger.error(
            "Assistant failed",
            operation=operation,
            provider=e.provider,
            model=e.model,
            error=str(e.last_error),
        )
        raise HTTPException(status_code=502, detail="LLM providers unavailable")


@router.post("/assistant")
async def assistant_edit(
    body: AssistantEditRequest,
    agent: Annotated[LLMAgent, Depends(get_llm_agent)],
) -> AssistantEditResponse:
    if not body.prompt.strip():
        raise HTTPException(status_code=400, detail="prompt is required")

    async def edit():
        return await agent.apply_summary_edit(
            body.summary,
            body.prompt.strip(),
            selection=parse_provider_selection(body.provider, agent.providers),
            model=body.model,
        )

    summary = await run_assistant(edit, "edit")
    return AssistantEditResponse(summary=summary)


@router.post("/assistant/chat")
async def assistant_chat(
    body: AssistantChatRequest,
    agent: Annotated[LLMAgent, Depends(get_llm_agent)],
) -> AssistantChatResponse:
    async def chat():
        return await agent.apply_chat(
            body.messages,
            body.summary,
            selection=parse_provider_selection(body.provider, agent.providers),
            model=body.model,
        )

    message = await run_assistant(chat, "chat")
    return AssistantChatResponse(message=message)
