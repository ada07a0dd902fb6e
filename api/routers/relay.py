# api/routers/relay.py
from typing import Any, Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies.provider import get_provider
from api.models.relay_models import (
    ChatRequest,
    GeneralTranslateRequest,
    KeywordsRequest,
    PreProposalRequest,
    ProposalContent,
    SummarizeRequest,
    ThesisSuggestionRequest,
    TranslateRequest,
)
from services import relay_service
from services.llm_service import ChatProvider
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


def _relay(task: Callable[[Any, ChatProvider], Any], payload: Any, provider: ChatProvider, name: str):
    try:
        return task(payload, provider)
    except Exception as e:
        error = relay_service.to_relay_error(e)
        if error.status_code < 500:
            logger.warning(f"Rejected {name} request ({error.status_code}): {error.message}")
        else:
            logger.error(f"Error in {name} relay ({error.status_code})", exc_info=error.status_code == 500)
        return JSONResponse(status_code=error.status_code, content={"error": error.message})


# The provider dependency is resolved before the body is read, so a missing
# credential is reported even when the payload itself is invalid.

@router.post("/chat")
def suggest_topics(payload: ThesisSuggestionRequest, provider: ChatProvider = Depends(get_provider)):
    return _relay(relay_service.suggest_topics, payload, provider, "chat")


@router.post("/scholar")
def find_articles(payload: KeywordsRequest, provider: ChatProvider = Depends(get_provider)):
    return _relay(relay_service.find_articles, payload, provider, "scholar")


@router.post("/literature")
def literature_review(payload: KeywordsRequest, provider: ChatProvider = Depends(get_provider)):
    return _relay(relay_service.literature_review, payload, provider, "literature")


@router.post("/pre-proposal")
def pre_proposal(payload: PreProposalRequest, provider: ChatProvider = Depends(get_provider)):
    return _relay(relay_service.pre_proposal, payload, provider, "pre-proposal")


@router.post("/summarize")
def summarize(payload: SummarizeRequest, provider: ChatProvider = Depends(get_provider)):
    return _relay(relay_service.summarize, payload, provider, "summarize")


@router.post("/evaluate-proposal")
def evaluate_proposal(payload: ProposalContent, provider: ChatProvider = Depends(get_provider)):
    return _relay(relay_service.evaluate, payload, provider, "evaluate-proposal")


@router.post("/translate")
def translate(payload: TranslateRequest, provider: ChatProvider = Depends(get_provider)):
    return _relay(relay_service.translate_topic, payload, provider, "translate")


@router.post("/general-translate")
def general_translate(payload: GeneralTranslateRequest, provider: ChatProvider = Depends(get_provider)):
    return _relay(relay_service.general_translate, payload, provider, "general-translate")


@router.post("/chat-bot")
def chat_bot(payload: ChatRequest, provider: ChatProvider = Depends(get_provider)):
    return _relay(relay_service.chat, payload, provider, "chat-bot")
