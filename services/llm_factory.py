#File: services/llm_factory.py
import os
import logging
from typing import Dict, Any, Tuple
from openai import OpenAI

logger = logging.getLogger(__name__)


class MissingCredentialError(ValueError):
    """Raised when the API key of the selected provider is not configured."""
    pass


class LLMProvider:
    AVALAI = "avalai"
    GEMINI = "gemini"
    OPENAI = "openai"


DEFAULT_TIMEOUT = 60.0

# Provider -> (API key variable, default base URL)
PROVIDER_SETTINGS: Dict[str, Tuple[str, str]] = {
    LLMProvider.AVALAI: ("AVALAI_API_KEY", "https://api.avalai.ir/v1"),
    LLMProvider.GEMINI: ("GEMINI_API_KEY", "https://generativelanguage.googleapis.com/v1beta/openai/"),
    LLMProvider.OPENAI: ("OPENAI_API_KEY", ""),
}


class LLMFactory:
    """
    Factory class to create and cache OpenAI-compatible clients.
    Every provider is reached through the OpenAI chat completions API;
    Gemini and AvalAI expose compatible endpoints.
    """

    _instances: Dict[Any, OpenAI] = {}

    @staticmethod
    def get_provider() -> str:
        provider = os.getenv("LLM_PROVIDER", LLMProvider.AVALAI).strip().lower()
        if provider not in PROVIDER_SETTINGS:
            logger.warning(f"Unknown LLM_PROVIDER '{provider}', falling back to {LLMProvider.AVALAI}")
            return LLMProvider.AVALAI
        return provider

    @staticmethod
    def get_client(provider: str = None, **kwargs) -> OpenAI:
        """
        Get or create a client for the specified provider.
        The API key is read from the environment on every call so a
        missing key is reported per request, never cached.
        """
        provider = provider or LLMFactory.get_provider()
        key_var, default_base_url = PROVIDER_SETTINGS[provider]

        api_key = kwargs.get("api_key") or os.getenv(key_var)
        if not api_key:
            raise MissingCredentialError(f"{key_var} not set")

        base_url = kwargs.get("base_url")
        if not base_url and provider == LLMProvider.AVALAI:
            base_url = os.getenv("AVALAI_BASE_URL", default_base_url)
        base_url = base_url or default_base_url
        timeout = kwargs.get("timeout") or LLMFactory.get_timeout()

        # No retries: every relay call reaches the provider exactly once
        cache_key = (provider, api_key, base_url or "", float(timeout))

        if cache_key in LLMFactory._instances:
            return LLMFactory._instances[cache_key]

        logger.info(f"Initializing LLM Client for provider: {provider} (Config Key: {hash(cache_key)})")

        try:
            client = OpenAI(
                api_key=api_key,
                base_url=base_url or None,
                timeout=timeout,
                max_retries=0,
            )
            LLMFactory._instances[cache_key] = client
            return client
        except Exception as e:
            logger.error(f"Failed to initialize {provider} client: {e}")
            raise

    @staticmethod
    def get_timeout() -> float:
        raw = os.getenv("LLM_TIMEOUT", str(DEFAULT_TIMEOUT))
        try:
            timeout = float(raw)
        except ValueError:
            logger.warning(f"Invalid LLM_TIMEOUT '{raw}', using {DEFAULT_TIMEOUT}s")
            return DEFAULT_TIMEOUT
        return timeout if timeout > 0 else DEFAULT_TIMEOUT

    @staticmethod
    def get_default_model(provider: str = None) -> str:
        provider = provider or LLMFactory.get_provider()
        if provider == LLMProvider.OPENAI:
            return os.getenv("LLM_MODEL", "gpt-4o-mini")
        return os.getenv("LLM_MODEL", "gemini-2.5-flash")
