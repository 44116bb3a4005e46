"""Provider Registry — model string → Provider Adapter via an explicit lookup table.

Invariants:
    - Model strings are "<provider>/<model>"; the provider prefix selects the adapter
    - Unknown or missing provider prefix raises UnsupportedProviderError
    - Every provider → adapter mapping is visible in ADAPTERS (no auto-discovery)
"""

from collections.abc import Callable

from notecritic.config import Settings
from notecritic.core.domain_types import ProviderId
from notecritic.core.errors import ErrorContext, UnsupportedProviderError
from notecritic.providers.anthropic_adapter import AnthropicAdapter
from notecritic.providers.base import McpServerConfig, ProviderAdapter, ProviderConfig
from notecritic.providers.openai_adapter import OpenAIAdapter

ADAPTERS: dict[ProviderId, Callable[[ProviderConfig], ProviderAdapter]] = {
    ProviderId.ANTHROPIC: AnthropicAdapter,
    ProviderId.OPENAI: OpenAIAdapter,
}


def parse_model_string(model_string: str) -> tuple[ProviderId, str]:
    """Split "anthropic/claude-..." into (ProviderId.ANTHROPIC, "claude-...")."""
    provider, sep, model = model_string.partition("/")
    try:
        provider_id = ProviderId(provider.strip().lower())
    except ValueError:
        raise UnsupportedProviderError(
            provider or model_string, context=ErrorContext(provider=provider),
        ) from None
    if not sep or not model:
        raise UnsupportedProviderError(
            model_string, context=ErrorContext(provider=provider),
        )
    return provider_id, model


def _api_key(settings: Settings, provider: ProviderId) -> str | None:
    if provider == ProviderId.ANTHROPIC:
        return settings.anthropic_api_key
    return settings.openai_api_key


def resolve_config(settings: Settings, model_string: str | None = None) -> ProviderConfig:
    provider, model = parse_model_string(model_string or settings.model)
    return ProviderConfig(
        provider=provider,
        model=model,
        api_key=_api_key(settings, provider),
        max_tokens=settings.max_tokens,
        thinking_budget_tokens=settings.thinking_budget_tokens,
        reasoning_effort=settings.reasoning_effort,
        enabled_tools=tuple(settings.enabled_tools),
        mcp_servers=tuple(
            McpServerConfig(
                name=s.name, url=s.url,
                authorization_token=s.authorization_token,
                allowed_tools=tuple(s.allowed_tools),
            )
            for s in settings.mcp_servers
        ),
    )


def get_adapter(settings: Settings, model_string: str | None = None) -> ProviderAdapter:
    config = resolve_config(settings, model_string)
    return ADAPTERS[config.provider](config)
