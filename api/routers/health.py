# File: api/routers/health.py
from fastapi import APIRouter

from services.llm_factory import LLMFactory, MissingCredentialError


router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "ok"}


@router.get("/health/provider")
async def provider_check():
    """Reports the selected provider and whether its key is configured. Never calls the provider."""
    provider = LLMFactory.get_provider()
    try:
        LLMFactory.get_client(provider)
        configured = True
    except MissingCredentialError:
        configured = False
    return {"provider": provider, "configured": configured}
