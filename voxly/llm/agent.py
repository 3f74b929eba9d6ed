from typing import Any

import httpx

from voxly.errors import InvalidInputError
from voxly.llm.base import LLMProvider
from voxly.llm.fallback import (
    AllProviders,
    Candidate,
    ProviderSelection,
    parse_provider_selection,
    resolve_candidates,
    run_with_fallback,
)
from voxly.llm.schema import normalize_chat_messages
from voxly.logger import logger
from voxly.settings import settings


class LLMAgent:
    """
    Entry point for every LLM operation.

    Owns the http client shared by the providers; use it as an async
    context manager (or call `aclose()`) so the client is released.
    """

    def __init__(
        self,
        providers: dict[str, LLMProvider],
        client: httpx.AsyncClient | None = None,
        provider_order: list[str] | None = None,
        default_selection: ProviderSelection | None = None,
    ):
        self.providers = providers
        self.client = client
        self.provider_order = [
            name
            for name in provider_order or settings.LLM_PROVIDER_ORDER
            if name in providers
        ]
        self.default_selection = default_selection or AllProviders()

    @classmethod
    def from_settings(cls) -> "LLMAgent":
        client = httpx.AsyncClient(timeout=settings.LLM_TIMEOUT)
        providers = {
            name: LLMProvider.get_instance(name, client)
            for name in settings.LLM_PROVIDER_ORDER
        }
        return cls(
            providers,
            client=client,
            default_selection=parse_provider_selection(
                settings.LLM_PROVIDER, providers.keys()
            ),
        )

    async def aclose(self):
        if self.client is not None:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def candidates(
        self, selection: ProviderSelection | None = None, model: str | None = None
    ) -> list[Candidate]:
        selection = selection or self.default_selection
        if (
            not isinstance(selection, AllProviders)
            and selection.name not in self.providers
        ):
            raise InvalidInputError(f"Unsupported LLM provider: {selection.name}")
        return resolve_candidates(
            selection,
            lambda name: self.providers[name].models(model),
            provider_order=self.provider_order,
        )

    async def summarize_transcript(
        self,
        transcript: str,
        template: str | None = None,
        selection: ProviderSelection | None = None,
        model: str | None = None,
    ) -> dict:
        if not isinstance(transcript, str) or not transcript.strip():
            raise InvalidInputError("Summary generation requires transcript text")

        candidates = self.candidates(selection, model)
        logger.info(
            "Summarizing transcript",
            template=template,
            candidates=[f"{c.provider}:{c.model}" for c in candidates],
        )
        return await run_with_fallback(
            candidates,
            lambda c: self.providers[c.provider].summarize(
                transcript, c.model, template=template
            ),
        )

    async def apply_summary_edit(
        self,
        summary: Any,
        instruction: str,
        selection: ProviderSelection | None = None,
        model: str | None = None,
    ) -> dict:
        if not isinstance(instruction, str) or not instruction.strip():
            raise InvalidInputError("Summary edit requires an instruction")

        return await run_with_fallback(
            self.candidates(selection, model),
            lambda c: self.providers[c.provider].edit_summary(
                summary, instruction, c.model
            ),
        )

    async def apply_chat(
        self,
        messages: Any,
        summary: Any,
        selection: ProviderSelection | None = None,
        model: str | None = None,
    ) -> str:
        history = normalize_chat_messages(messages)
        if not history:
            raise InvalidInputError("Chat requires at least one message")

        return await run_with_fallback(
            self.candidates(selection, model),
            lambda c: self.providers[c.provider].chat(history, summary, c.model),
        )
