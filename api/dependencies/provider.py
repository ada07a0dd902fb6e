import logging
from fastapi import HTTPException, status

from services.llm_factory import LLMFactory, MissingCredentialError
from services.llm_service import ChatProvider, OpenAIChatProvider

logger = logging.getLogger(__name__)

CONFIG_ERROR_MESSAGE = "خطای پیکربندی سرور: کلید API یافت نشد."


def get_provider() -> ChatProvider:
    """
    Resolves the chat provider for one relay invocation.
    The credential is looked up on every call; a missing key is a hard 500.
    Tests replace this dependency through app.dependency_overrides.
    """
    provider_name = LLMFactory.get_provider()
    try:
        client = LLMFactory.get_client(provider_name)
    except MissingCredentialError as e:
        logger.error(f"Relay called without provider credentials: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=CONFIG_ERROR_MESSAGE,
        )
    return OpenAIChatProvider(client, LLMFactory.get_default_model(provider_name))
