# File: services/relay_service.py
"""
One function per relay task. Each validates the minimum request fields,
renders the task's prompt template, calls the provider once and checks the
shape of the parsed JSON before it is returned to the client.
"""
import logging
import math
import textwrap
from typing import Any, Dict, List, Optional, Tuple, Type, Union

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
from services.llm_service import (
    ChatProvider,
    LLMGenerationError,
    LLMJSONParseError,
    parse_json_response,
)
from services.prompts import SYSTEM_PROMPTS, get_template
from utils.limits import MAX_EXTRACTED_CHARS, MAX_TRANSLATE_WORDS, MIN_SUMMARY_CHARS
from utils.sanitization import count_words, is_nonempty_text, truncate

logger = logging.getLogger(__name__)

ShapeSpec = Dict[str, Union[Type, Tuple[Type, ...]]]

LEVEL_TEXT = {"arshad": "کارشناسی ارشد", "doctora": "دکتری"}
METHOD_TEXT = {"quantitative": "کمی", "qualitative": "کیفی", "mixed": "ترکیبی"}
LEVEL_NOTES = {
    "arshad": "نکته مهم: چون مقطع کارشناسی ارشد است، موضوعات بیشتر ماهیت «رابطه‌ای» و کاربردی داشته باشند و از پیچیدگی بیش از حد پرهیز شود.",
    "doctora": "نکته مهم: چون مقطع دکتری است، موضوعات کاملاً نوآورانه و عمیق باشند، جنبه «مدل‌سازی» یا توسعه نظریه داشته باشند و به ادبیات پژوهش بیفزایند.",
}
NOT_PROVIDED = "ارائه نشده"
UNSPECIFIED = "نامشخص"

TONE_INSTRUCTIONS = {
    "formal": "Official, formal and professional. Suitable for business or legal documents.",
    "informal": "Conversational, friendly and casual. Suitable for chats or blog posts.",
    "academic": "Scholarly, precise and sophisticated. Suitable for research papers or essays.",
}

# Section key -> heading shown to the model
PROPOSAL_SECTIONS = [
    ("statement", "Statement of Problem (بیان مسئله)"),
    ("significance", "Significance of the Study (اهمیت و ضرورت)"),
    ("objectives", "Objectives (اهداف تحقیق)"),
    ("questions", "Research Questions/Hypotheses (سوالات و فرضیات)"),
    ("methodology", "Methodology (روش‌شناسی - شامل روش، جامعه، ابزار و تحلیل)"),
    ("fullText", "Full Proposal Document (متن کامل پروپوزال)"),
]

TOPIC_SHAPE: ShapeSpec = {"keywords": list, "topics": list}
ARTICLES_SHAPE: ShapeSpec = {"articles": list}
LITERATURE_SHAPE: ShapeSpec = {"items": list}
PRE_PROPOSAL_SHAPE: ShapeSpec = {
    "introduction": str,
    "mainObjective": str,
    "specificObjectives": list,
    "mainQuestion": str,
    "specificQuestions": list,
    "methodology": dict,
}
SUMMARY_SHAPE: ShapeSpec = {
    "title": str,
    "introduction": str,
    "researchMethod": str,
    "dataCollectionMethod": str,
    "statisticalPopulation": str,
    "dataAnalysisMethod": str,
    "results": str,
}
EVALUATION_SHAPE: ShapeSpec = {"score": (int, float), "points": list, "overallComment": str}


class RelayError(Exception):
    """Carries the HTTP status and the message returned in the error envelope."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class EnvelopeShapeError(ValueError):
    """Raised when parsed model output lacks an expected key or has the wrong type."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.message = message
        self.raw_text = raw_text


def check_shape(data: Any, shape: ShapeSpec, raw_text: str) -> Dict[str, Any]:
    problems = []
    if not isinstance(data, dict):
        problems.append("root is not an object")
    else:
        for key, expected in shape.items():
            value = data.get(key)
            # bool is an int subclass; a boolean score is still malformed
            if value is None or isinstance(value, bool) or not isinstance(value, expected):
                problems.append(key)
            elif isinstance(value, float) and not math.isfinite(value):
                problems.append(key)

    if problems:
        logger.error(f"Model output failed shape check ({', '.join(problems)}): {raw_text}")
        raise EnvelopeShapeError(
            f"ساختار JSON دریافت شده از API نامعتبر است. پاسخ دریافت شده: {raw_text}",
            raw_text=raw_text,
        )
    return data


def to_relay_error(exc: Exception) -> RelayError:
    """Maps any failure raised while serving a relay call to its envelope."""
    if isinstance(exc, RelayError):
        return exc
    if isinstance(exc, LLMGenerationError):
        return RelayError(exc.status_code, exc.message)
    if isinstance(exc, (LLMJSONParseError, EnvelopeShapeError)):
        return RelayError(500, exc.message)
    return RelayError(500, f"خطا در پردازش: {exc}")


def _complete(provider: ChatProvider, template_name: str, **slots) -> str:
    template = get_template(template_name)
    return provider.complete(
        template.messages(**slots),
        json_mode=template.json_mode,
        temperature=template.temperature,
        top_p=template.top_p,
    )


def _complete_json(provider: ChatProvider, template_name: str, shape: ShapeSpec, **slots) -> Dict[str, Any]:
    raw = _complete(provider, template_name, **slots)
    return check_shape(parse_json_response(raw), shape, raw)


def _require(value: Optional[str], message: str) -> str:
    if not is_nonempty_text(value):
        raise RelayError(400, message)
    return value.strip()


def suggest_topics(payload: ThesisSuggestionRequest, provider: ChatProvider) -> Dict[str, List[Any]]:
    field_of_study = _require(payload.fieldOfStudy, "رشته تحصیلی یک مقدار الزامی است.")

    advanced = any(
        [is_nonempty_text(payload.keywords), payload.level, payload.methodology, is_nonempty_text(payload.targetPopulation)]
    )
    if advanced:
        data = _complete_json(
            provider,
            "topic_advanced",
            TOPIC_SHAPE,
            field_of_study=field_of_study,
            keywords=(payload.keywords or "").strip() or NOT_PROVIDED,
            level_text=LEVEL_TEXT.get(payload.level, UNSPECIFIED),
            method_text=METHOD_TEXT.get(payload.methodology, UNSPECIFIED),
            population_text=(payload.targetPopulation or "").strip() or NOT_PROVIDED,
            level_note=LEVEL_NOTES.get(payload.level, ""),
        )
    else:
        data = _complete_json(provider, "topic_simple", TOPIC_SHAPE, field_of_study=field_of_study)

    return {"keywords": data["keywords"], "topics": data["topics"]}


def find_articles(payload: KeywordsRequest, provider: ChatProvider) -> List[Any]:
    keywords = _require(payload.keywords, "کلیدواژه‌ها یک مقدار الزامی است.")
    data = _complete_json(provider, "scholar", ARTICLES_SHAPE, keywords=keywords)
    # The client expects the bare array, not the wrapping object
    return data["articles"]


def literature_review(payload: KeywordsRequest, provider: ChatProvider) -> Dict[str, List[Any]]:
    keywords = _require(payload.keywords, "کلیدواژه‌ها الزامی است.")
    data = _complete_json(provider, "literature", LITERATURE_SHAPE, keywords=keywords)
    return {"items": data["items"]}


def pre_proposal(payload: PreProposalRequest, provider: ChatProvider) -> Dict[str, Any]:
    topic = _require(payload.topic, "موضوع پایان‌نامه یک مقدار الزامی است.")

    context_lines = []
    if payload.level:
        context_lines.append(f"Academic level: {LEVEL_TEXT[payload.level]}")
    if payload.methodology:
        context_lines.append(f"Preferred research method: {METHOD_TEXT[payload.methodology]}")
    if is_nonempty_text(payload.targetPopulation):
        context_lines.append(f"Target population: {payload.targetPopulation.strip()}")

    return _complete_json(
        provider,
        "pre_proposal",
        PRE_PROPOSAL_SHAPE,
        topic=topic,
        context="\n".join(context_lines),
    )


def summarize(payload: SummarizeRequest, provider: ChatProvider) -> Dict[str, Any]:
    content = payload.content
    if not isinstance(content, str) or len(content.strip()) < MIN_SUMMARY_CHARS:
        raise RelayError(400, "محتوای مقاله برای خلاصه‌سازی بسیار کوتاه یا نامعتبر است.")

    content = truncate(content.strip(), MAX_EXTRACTED_CHARS)
    return _complete_json(provider, "summarize", SUMMARY_SHAPE, content=content)


def evaluate(payload: ProposalContent, provider: ChatProvider) -> Dict[str, Any]:
    blocks = []
    for number, (key, heading) in enumerate(PROPOSAL_SECTIONS, start=1):
        value = getattr(payload, key)
        if is_nonempty_text(value):
            text = truncate(value.strip(), MAX_EXTRACTED_CHARS)
            blocks.append(f'{number}. **{heading}:**\n"{text}"')

    if not blocks:
        raise RelayError(400, "لطفاً حداقل یک بخش از پروپوزال را تکمیل کنید.")

    return _complete_json(provider, "evaluate", EVALUATION_SHAPE, sections="\n\n".join(blocks))


def translate_topic(payload: TranslateRequest, provider: ChatProvider) -> Dict[str, str]:
    text = _require(payload.text, "متن برای ترجمه الزامی است.")
    translation = _complete(provider, "translate_topic", text=text).strip()
    if not translation:
        raise RelayError(500, "ترجمه با شکست مواجه شد.")
    return {"translation": translation}


def general_translate(payload: GeneralTranslateRequest, provider: ChatProvider) -> Dict[str, str]:
    text = _require(payload.text, "متن ورودی الزامی است.")
    if count_words(text) > MAX_TRANSLATE_WORDS:
        raise RelayError(400, f"متن ورودی نباید بیشتر از {MAX_TRANSLATE_WORDS} کلمه باشد.")

    if payload.direction == "fa-en":
        source, target, extra = "Persian (Farsi)", "English", ""
    else:
        source, target = "English", "Persian (Farsi)"
        extra = "Make the Persian output flow naturally and respect the requested tone."

    translation = _complete(
        provider,
        "general_translate",
        text=text,
        source_language=source,
        target_language=target,
        tone_instruction=TONE_INSTRUCTIONS[payload.tone],
        extra_instruction=extra,
    ).strip()
    if not translation:
        raise RelayError(500, "ترجمه با شکست مواجه شد.")
    return {"translation": translation}


def chat(payload: ChatRequest, provider: ChatProvider) -> Dict[str, str]:
    if not payload.messages:
        raise RelayError(400, "تاریخچه پیام‌ها الزامی است.")

    messages = [{"role": "system", "content": textwrap.dedent(SYSTEM_PROMPTS["chat"]).strip()}]
    messages.extend({"role": m.role, "content": m.content} for m in payload.messages)

    reply = provider.complete(messages, temperature=0.7)
    return {"response": reply}
