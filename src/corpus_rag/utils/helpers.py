"""
Shared utility functions.

Helpers used across the engine — LLM factory, credential checks, text
similarity and language detection, logging setup.
"""

import logging
import os
import re
from typing import Any, Optional

from langchain_core.language_models.chat_models import BaseChatModel

from corpus_rag.config import LLMConfig, LLMProvider
from corpus_rag.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable each provider's LangChain client reads its key from
_CREDENTIAL_VARS = {
    LLMProvider.OPENAI: "OPENAI_API_KEY",
    LLMProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    LLMProvider.GOOGLE: "GOOGLE_API_KEY",
}

_ARABIC_CHAR = re.compile(r"[\u0600-\u06FF]")


def ensure_credentials(provider: LLMProvider) -> None:
    """
    Fail fast when the API key for a provider is missing.

    Called when a client is built, so a missing key is a startup error
    instead of a failure in the middle of a user query.

    Raises:
        ConfigurationError: naming the environment variable to set.
    """
    var = _CREDENTIAL_VARS.get(provider)
    if var and not os.getenv(var):
        raise ConfigurationError(
            f"{var} is not set. Export it or add it to .env to use the "
            f"'{provider.value}' provider."
        )


def get_llm(config: LLMConfig, model_name: Optional[str] = None) -> BaseChatModel:
    """
    Factory that returns a LangChain chat model based on config.

    Lazy imports so you only need the package for the provider you
    actually use. model_name overrides config.model_name, which is how
    FallbackGenerator builds one client per model in its chain.

    Args:
        config: LLMConfig with provider, temperature, max_tokens.
        model_name: Model identifier to instantiate instead of config.model_name.

    Returns:
        A LangChain BaseChatModel instance.

    Raises:
        ConfigurationError: If the provider is unknown or its key is missing.
    """
    name = model_name or config.model_name
    ensure_credentials(config.provider)

    if config.provider == LLMProvider.OPENAI:
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=name,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    elif config.provider == LLMProvider.ANTHROPIC:
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=name,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    elif config.provider == LLMProvider.GOOGLE:
        try:
            from langchain_google_genai import ChatGoogleGenerativeAI
        except ImportError:
            raise ImportError(
                "Google models require langchain-google-genai. "
                "Install with: pip install corpus-rag[google]"
            )

        return ChatGoogleGenerativeAI(
            model=name,
            temperature=config.temperature,
            max_output_tokens=config.max_tokens,
        )

    else:
        raise ConfigurationError(
            f"Unknown LLM provider: '{config.provider}'. "
            f"Supported: 'openai', 'anthropic', 'google'."
        )


def message_text(message: Any) -> str:
    """
    Plain text of a chat model response.

    AIMessage.content is either a string or a list of content parts
    (Anthropic and Gemini return parts); text parts are concatenated.
    """
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return str(content or "")


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit costs, two-row dynamic programming."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """
    Normalized edit similarity in [0, 1]: (len(longer) - distance) / len(longer).

    Two empty strings are identical (1.0).
    """
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return (longer - levenshtein_distance(a, b)) / longer


def detect_language(text: str) -> str:
    """
    Classify text as 'ar', 'en' or 'mixed' by its share of Arabic letters.

    Above 70% Arabic → 'ar', below 30% → 'en', anything between is 'mixed'.
    Text without any non-space characters counts as 'en'.
    """
    letters = re.sub(r"\s", "", text)
    if not letters:
        return "en"
    ratio = len(_ARABIC_CHAR.findall(letters)) / len(letters)
    if ratio > 0.7:
        return "ar"
    if ratio < 0.3:
        return "en"
    return "mixed"


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure a basic root handler for scripts and notebooks.

    Library code only ever calls logging.getLogger(__name__); applications
    that already configure logging should not call this.
    """
    resolved = (level or os.getenv("CORPUS_RAG_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, resolved, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
