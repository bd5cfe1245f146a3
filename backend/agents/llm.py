"""Language model backends for the debate roles.

Every role talks to its backends through ``LLMCaller``, which pairs the
``ProviderFallbackExecutor`` with a backend invoke function. The default
invoke function builds a LangChain chat model for the backend
(OpenAI, Anthropic or Gemini) and sends a system + user message pair.

Tests substitute the invoke function, so no role ever constructs a
client itself.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from config import BACKEND_ANTHROPIC, BACKEND_GEMINI, BACKEND_OPENAI, config
from graph.state import ProviderCallResult
from utils.fallback import BackendConfig, ProviderFallbackExecutor
from utils.resilience import EmptyResponseError, ExternalAPIError, get_logger

logger = get_logger("agents.llm")


@dataclass(frozen=True)
class BackendReply:
    """Text and token usage returned by one backend invocation."""

    text: str
    tokens_used: int = 0


InvokeFn = Callable[[BackendConfig, str, str, float, int], Awaitable[BackendReply]]


def create_chat_model(
    backend: BackendConfig,
    temperature: float,
    max_tokens: int,
) -> BaseChatModel:
    """Create a LangChain chat model for *backend*.

    Args:
        backend: Backend identity; ``options["api_key"]`` overrides the
            configured key
        temperature: Sampling temperature
        max_tokens: Completion budget

    Returns:
        Configured chat model

    Raises:
        ExternalAPIError: If the backend id is unknown
    """
    api_key = backend.options.get("api_key")
    timeout = backend.options.get("timeout", config.backend_timeout_seconds)

    if backend.backend_id == BACKEND_OPENAI:
        return ChatOpenAI(
            model=backend.model,
            api_key=api_key or config.openai_api_key,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            max_retries=0,
        )
    if backend.backend_id == BACKEND_ANTHROPIC:
        return ChatAnthropic(
            model=backend.model,
            api_key=api_key or config.anthropic_api_key,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            max_retries=0,
        )
    if backend.backend_id == BACKEND_GEMINI:
        return ChatGoogleGenerativeAI(
            model=backend.model,
            google_api_key=api_key or config.google_api_key,
            temperature=temperature,
            max_output_tokens=max_tokens,
            timeout=timeout,
            max_retries=0,
        )
    raise ExternalAPIError(
        f"Unknown backend: {backend.backend_id}",
        details={"backend": backend.backend_id},
    )


def _content_text(content: Any) -> str:
    """Flatten LangChain message content, which may be a list of blocks."""
    if isinstance(content, list):
        return "".join(
            str(block.get("text", "")) if isinstance(block, dict) else str(block)
            for block in content
        )
    return str(content or "")


async def invoke_backend(
    backend: BackendConfig,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    max_tokens: int,
) -> BackendReply:
    """Send one system + user prompt pair to *backend*.

    Returns:
        BackendReply with the response text and total tokens used
    """
    llm = create_chat_model(backend, temperature, max_tokens)
    messages = [
        SystemMessage(content=system_prompt),
        HumanMessage(content=user_prompt),
    ]
    response = await llm.ainvoke(messages)

    usage = getattr(response, "usage_metadata", None) or {}
    return BackendReply(
        text=_content_text(response.content),
        tokens_used=int(usage.get("total_tokens", 0) or 0),
    )


def build_chain(
    backend_ids: Sequence[str],
    models: Optional[dict[str, str]] = None,
    available: Optional[set[str]] = None,
) -> list[BackendConfig]:
    """Build a fallback chain from backend ids.

    Args:
        backend_ids: Backend ids in priority order
        models: Model per backend (default: ``config.models``)
        available: Backends allowed in the chain (default: those with an
            API key configured)

    Returns:
        Chain with unknown or unavailable backends dropped
    """
    models = models if models is not None else config.models
    available = available if available is not None else set(config.backend_keys())
    chain = []
    for backend_id in backend_ids:
        if backend_id not in models:
            logger.warning("unknown_backend_in_chain", backend=backend_id)
            continue
        if backend_id not in available:
            continue
        chain.append(BackendConfig(backend_id=backend_id, model=models[backend_id]))
    return chain


class LLMCaller:
    """Runs a prompt against a backend chain with retries and failover."""

    def __init__(
        self,
        executor: Optional[ProviderFallbackExecutor] = None,
        invoke: InvokeFn = invoke_backend,
    ):
        self.executor = executor or ProviderFallbackExecutor(
            max_retries_per_backend=config.max_retries_per_backend,
            backoff_schedule=config.backoff_schedule,
        )
        self._invoke = invoke

    async def call(
        self,
        chain: Sequence[BackendConfig],
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> ProviderCallResult:
        """Get a non-blank completion from the first healthy backend.

        Blank content counts as a failed attempt, so it is retried and
        failed over like any transient error.

        Raises:
            AllBackendsExhaustedError: If no backend produced content
        """

        async def work(backend: BackendConfig) -> BackendReply:
            reply = await self._invoke(backend, system_prompt, user_prompt, temperature, max_tokens)
            if not reply.text or not reply.text.strip():
                raise EmptyResponseError(
                    f"{backend.backend_id} returned an empty response",
                    details={"backend": backend.backend_id, "model": backend.model},
                )
            return reply

        outcome = await self.executor.execute_with_fallback(chain, work)
        return ProviderCallResult(
            content=outcome.result.text,
            provider_id=outcome.backend_used.backend_id,
            model=outcome.backend_used.model,
            tokens_used=outcome.result.tokens_used,
            retries=outcome.retries,
            duration_ms=outcome.duration_ms,
        )

