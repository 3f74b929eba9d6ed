import importlib
from typing import Any

import httpx
from prometheus_client import Counter, Histogram

from voxly.errors import ProviderError, RateLimitedError
from voxly.llm.prompts import (
    EDIT_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    compile_chat_prompt,
    compile_edit_prompt,
    compile_summary_prompt,
)
from voxly.llm.schema import normalize_chat_messages, normalize_summary, parse_loose
from voxly.logger import logger
from voxly.settings import settings

JSON_TEMPERATURE = 0.2
CHAT_TEMPERATURE = 0.4


class LLMProvider:
    """
    One LLM backend exposing summarize / edit_summary / chat.

    Every operation performs exactly one request to the backend: retrying
    and switching model or provider is the job of the fallback resolver.
    The http client is owned by the caller and shared by all providers.
    """

    _registry = {}
    name: str = ""
    # backend error codes meaning "slow down", besides HTTP 429
    rate_limit_codes: tuple[str, ...] = ()

    m_generate = Histogram(
        "llm_generate",
        "Time spent in LLMProvider requests",
        ["backend"],
    )
    m_generate_call = Counter(
        "llm_generate_call",
        "Number of LLMProvider requests",
        ["backend"],
    )
    m_generate_success = Counter(
        "llm_generate_success",
        "Number of successful LLMProvider requests",
        ["backend"],
    )
    m_generate_failure = Counter(
        "llm_generate_failure",
        "Number of failed LLMProvider requests",
        ["backend"],
    )

    @classmethod
    def register(cls, name, klass):
        cls._registry[name] = klass

    @classmethod
    def get_instance(cls, name: str, client: httpx.AsyncClient) -> "LLMProvider":
        """
        Build a provider by name.

        Settings named `LLM_<NAME>_XXX` are passed to the constructor as
        `xxx`, e.g. `LLM_OPENAI_API_KEY` becomes `api_key`.
        """
        if name not in cls._registry:
            module_name = f"voxly.llm.llm_{name}"
            importlib.import_module(module_name)

        config = settings.backend_options(f"LLM_{name.upper()}_")
        return cls._registry[name](client=client, **config)

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        api_key: str | None = None,
        models: list[str] | None = None,
        default_model: str | None = None,
    ):
        if not url:
            raise ValueError(f"LLM provider `{self.name}` requires `url`")
        self.client = client
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.configured_models = [m.strip() for m in models or [] if m and m.strip()]
        self.default_model = default_model
        self.logger = logger.bind(provider=self.name)

        backend = self.__class__.__name__
        self.m_generate = self.m_generate.labels(backend)
        self.m_generate_call = self.m_generate_call.labels(backend)
        self.m_generate_success = self.m_generate_success.labels(backend)
        self.m_generate_failure = self.m_generate_failure.labels(backend)

    def models(self, explicit_model: str | None = None) -> list[str]:
        """Models to try, in order, for one operation on this provider."""
        if explicit_model:
            return [explicit_model.strip()]
        if self.configured_models:
            return list(self.configured_models)
        if self.default_model:
            return [self.default_model]
        return []

    async def summarize(
        self, transcript: str, model: str, template: str | None = None
    ) -> dict:
        prompt = compile_summary_prompt(transcript, template)
        self.logger.info(
            "Summarizing transcript",
            model=model,
            transcript_preview=transcript[:120],
        )
        raw = await self.generate(
            model=model,
            system=SUMMARY_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
            temperature=JSON_TEMPERATURE,
            json_mode=True,
        )
        return normalize_summary(parse_loose(raw))

    async def edit_summary(self, summary: Any, instruction: str, model: str) -> dict:
        prompt = compile_edit_prompt(summary, instruction)
        self.logger.info(
            "Editing summary", model=model, instruction_preview=instruction[:120]
        )
        raw = await self.generate(
            model=model,
            system=EDIT_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
            temperature=JSON_TEMPERATURE,
            json_mode=True,
        )
        return normalize_summary(parse_loose(raw))

    async def chat(self, history: Any, summary: Any, model: str) -> str:
        messages = normalize_chat_messages(history)
        self.logger.info("Chatting", model=model, message_count=len(messages))
        raw = await self._chat(messages, summary, model)
        return (raw or "").strip()

    async def _chat(self, messages: list[dict], summary: Any, model: str) -> str:
        """
        Default chat rendering: the whole conversation goes into a single
        prompt. Backends with native chat turns override this.
        """
        return await self.generate(
            model=model,
            system=None,
            messages=[
                {"role": "user", "content": compile_chat_prompt(messages, summary)}
            ],
            temperature=CHAT_TEMPERATURE,
            json_mode=False,
        )

    async def generate(
        self,
        model: str,
        system: str | None,
        messages: list[dict],
        temperature: float,
        json_mode: bool,
    ) -> str:
        self.m_generate_call.inc()
        try:
            with self.m_generate.time():
                try:
                    result = await self._generate(
                        model=model,
                        system=system,
                        messages=messages,
                        temperature=temperature,
                        json_mode=json_mode,
                    )
                except httpx.HTTPStatusError as e:
                    raise self.classify_error(e.response, model) from e
                except httpx.HTTPError as e:
                    raise ProviderError(
                        f"{self.name} request failed: {e!r}",
                        provider=self.name,
                        model=model,
                    ) from e
                except (ValueError, TypeError, AttributeError) as e:
                    # body was not JSON, or JSON of an unexpected shape
                    raise ProviderError(
                        f"{self.name} returned an invalid response: {e}",
                        provider=self.name,
                        model=model,
                    ) from e
            self.m_generate_success.inc()
        except ProviderError as e:
            self.m_generate_failure.inc()
            self.logger.warning(
                "LLM request failed",
                model=model,
                status_code=e.status_code,
                code=e.code,
                rate_limited=e.rate_limited,
                error=str(e),
            )
            raise

        self.logger.debug("LLM result [raw]", model=model, preview=result[:200])
        return result

    def classify_error(self, response: httpx.Response, model: str) -> ProviderError:
        code = self._error_code(response)
        message = f"{self.name} returned HTTP {response.status_code}"
        if code:
            message = f"{message} ({code})"

        if response.status_code == 429 or (code and code in self.rate_limit_codes):
            klass = RateLimitedError
        else:
            klass = ProviderError
        return klass(
            message,
            provider=self.name,
            model=model,
            status_code=response.status_code,
            code=code,
        )

    def _error_code(self, response: httpx.Response) -> str | None:
        raise NotImplementedError

    async def _generate(
        self,
        model: str,
        system: str | None,
        messages: list[dict],
        temperature: float,
        json_mode: bool,
    ) -> str:
        raise NotImplementedError
