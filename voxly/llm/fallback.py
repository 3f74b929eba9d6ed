"""
Ordered (provider, model) fallback.

Candidates are tried one at a time. A failure moves on to the next model of
the same provider only when it was rate limited; any other failure skips
the provider's remaining models and moves on to the next provider. When
everything fails the last error is raised, wrapped in
`AllCandidatesExhaustedError`.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, TypeVar, Union

from voxly.errors import AllCandidatesExhaustedError, InvalidInputError
from voxly.logger import logger
from voxly.settings import settings

T = TypeVar("T")


@dataclass(frozen=True)
class Candidate:
    provider: str
    model: str


@dataclass(frozen=True)
class AllProviders:
    pass


@dataclass(frozen=True)
class OnlyProvider:
    name: str


ProviderSelection = Union[AllProviders, OnlyProvider]

ONLY_SUFFIX = "-only"


def parse_provider_selection(
    value: str | None, known_providers: Iterable[str] | None = None
) -> ProviderSelection:
    """
    Resolve a user or env supplied provider preference.

    `"<name>-only"` pins a single provider. Anything else, including a plain
    provider name, keeps the configured order.
    """
    if not value or not value.strip():
        return AllProviders()

    value = value.strip().lower()
    if not value.endswith(ONLY_SUFFIX):
        return AllProviders()

    name = value[: -len(ONLY_SUFFIX)]
    known = list(known_providers or settings.LLM_PROVIDER_ORDER)
    if name not in known:
        raise InvalidInputError(f"Unsupported LLM provider: {name}")
    return OnlyProvider(name=name)


def resolve_candidates(
    selection: ProviderSelection,
    models_for: Callable[[str], list[str]],
    provider_order: list[str] | None = None,
) -> list[Candidate]:
    if isinstance(selection, OnlyProvider):
        providers = [selection.name]
    elif isinstance(selection, AllProviders):
        providers = list(provider_order or settings.LLM_PROVIDER_ORDER)
    else:
        raise TypeError(f"Unknown provider selection: {selection!r}")

    return [
        Candidate(provider=provider, model=model)
        for provider in providers
        for model in models_for(provider)
    ]


async def run_with_fallback(
    candidates: list[Candidate],
    operation: Callable[[Candidate], Awaitable[T]],
) -> T:
    if not candidates:
        raise InvalidInputError("No LLM candidate configured")

    last_error: Exception | None = None
    skipped_providers: set[str] = set()

    for candidate in candidates:
        if candidate.provider in skipped_providers:
            continue

        try:
            return await operation(candidate)
        except Exception as e:
            last_error = e
            rate_limited = getattr(e, "rate_limited", False)
            logger.warning(
                "LLM candidate failed",
                provider=candidate.provider,
                model=candidate.model,
                error_type=type(e).__name__,
                error=str(e),
                rate_limited=rate_limited,
            )
            if not rate_limited:
                skipped_providers.add(candidate.provider)

    raise AllCandidatesExhaustedError(last_error) from last_error
