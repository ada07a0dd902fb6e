# services/orchestrator.py
import logging
import threading
from dataclasses import fields
from typing import Any, Dict, Optional, Tuple

from clients.relay_client import RelayClient, RelayRequestError
from services.document_extraction import DocumentTextService, ExtractionError
from services.token_estimator import TokenEstimate, estimate_tokens
from state.results import (
    ArticleSummary,
    Evaluation,
    LiteratureReview,
    PreProposal,
    ThesisSuggestion,
    Translation,
    articles_from_payload,
)
from state.state_schema import FILE_MODES, AppState, ChatInput, Phase, TaskMode, UploadedFile
from utils.limits import ALLOWED_UPLOAD_TYPES, MAX_TRANSLATE_WORDS, MAX_UPLOAD_BYTES, MIN_SUMMARY_CHARS
from utils.sanitization import count_words, is_nonempty_text

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "یک خطای ناشناخته رخ داد. لطفاً دوباره تلاش کنید."
NO_REQUEST_MESSAGE = "این بخش درخواستی به سرور ارسال نمی‌کند."
FILE_NOT_ACCEPTED_MESSAGE = "بارگذاری فایل در این بخش امکان‌پذیر نیست."
INVALID_FILE_TYPE_MESSAGE = "فرمت فایل پشتیبانی نمی‌شود. فقط فایل‌های PDF، Word (DOCX) و متنی مجاز هستند."
FILE_TOO_LARGE_MESSAGE = f"حجم فایل نباید بیشتر از {MAX_UPLOAD_BYTES // (1024 * 1024)} مگابایت باشد."
SHORT_DOCUMENT_MESSAGE = "متن استخراج‌شده از فایل برای خلاصه‌سازی بسیار کوتاه است."

REQUIRED_MESSAGES = {
    TaskMode.TOPIC: "لطفاً رشته تحصیلی خود را وارد کنید.",
    TaskMode.ARTICLE: "لطفاً کلیدواژه‌ها را وارد کنید.",
    TaskMode.LITERATURE: "لطفاً کلیدواژه‌ها را وارد کنید.",
    TaskMode.PRE_PROPOSAL: "لطفاً موضوع پایان‌نامه را وارد کنید.",
    TaskMode.SUMMARIZE: "لطفاً فایل مقاله را بارگذاری کنید.",
    TaskMode.EVALUATE: "لطفاً حداقل یک بخش از پروپوزال را تکمیل کنید یا فایل آن را بارگذاری کنید.",
    TaskMode.TRANSLATE: "لطفاً متن مورد نظر برای ترجمه را وارد کنید.",
    TaskMode.CHAT: "لطفاً پیام خود را بنویسید.",
}
WORD_LIMIT_MESSAGE = f"متن ورودی نباید بیشتر از {MAX_TRANSLATE_WORDS} کلمه باشد."

EVALUATION_SECTIONS = ("statement", "significance", "objectives", "questions", "methodology")

RESULT_BUILDERS = {
    TaskMode.TOPIC: ThesisSuggestion.from_payload,
    TaskMode.ARTICLE: articles_from_payload,
    TaskMode.LITERATURE: LiteratureReview.from_payload,
    TaskMode.PRE_PROPOSAL: PreProposal.from_payload,
    TaskMode.SUMMARIZE: ArticleSummary.from_payload,
    TaskMode.EVALUATE: Evaluation.from_payload,
    TaskMode.TRANSLATE: Translation.from_payload,
}


def _non_empty(data, names) -> Dict[str, Any]:
    payload = {}
    for name in names:
        value = getattr(data, name)
        if isinstance(value, str):
            if value.strip():
                payload[name] = value.strip()
        elif value is not None:
            payload[name] = value
    return payload


class TaskOrchestrator:
    """
    Headless counterpart of the single-page client: holds the tagged mode
    state, recomputes the token estimate on demand and runs one submit at a
    time through validate -> extract -> relay -> result.
    """

    def __init__(self, relay: Optional[RelayClient] = None, documents: Optional[DocumentTextService] = None):
        self.relay = relay or RelayClient()
        self.documents = documents or DocumentTextService()
        self.state = AppState()
        self._lock = threading.Lock()
        # One outstanding relay call per instance, across mode switches
        self._in_flight = False

    # --------------------------------------------
    # State access
    # --------------------------------------------
    @property
    def mode(self) -> TaskMode:
        return self.state.mode

    @property
    def data(self):
        return self.state.data

    @property
    def result(self):
        return self.state.result

    @property
    def error(self) -> Optional[str]:
        return self.state.error

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def uploaded_file(self) -> Optional[UploadedFile]:
        return self.state.uploaded_file

    @property
    def estimate(self) -> TokenEstimate:
        file_size = self.state.uploaded_file.size if self.state.uploaded_file else None
        return estimate_tokens(self.state.mode, self.state.data, file_size)

    # --------------------------------------------
    # User actions
    # --------------------------------------------
    def switch_mode(self, mode) -> None:
        mode = TaskMode(mode)
        logger.info(f"Switching mode {self.state.mode.value} -> {mode.value}")
        self.state = AppState.for_mode(mode)

    def update(self, **changes) -> None:
        names = {f.name for f in fields(self.state.data)}
        # Chat history only grows through submit()
        rejected = sorted((set(changes) - names) | ({"history"} & set(changes)))
        if rejected:
            raise ValueError(f"Mode '{self.state.mode.value}' does not accept: {', '.join(rejected)}")
        for name, value in changes.items():
            setattr(self.state.data, name, value)

    def attach_file(self, name: str, mime_type: str, content: bytes) -> bool:
        # A new selection always replaces the previous file
        self.state.uploaded_file = None

        if self.state.mode not in FILE_MODES:
            self.state.error = FILE_NOT_ACCEPTED_MESSAGE
            return False
        if mime_type not in ALLOWED_UPLOAD_TYPES:
            logger.warning(f"Rejected upload {name} with type {mime_type}")
            self.state.error = INVALID_FILE_TYPE_MESSAGE
            return False
        if len(content) > MAX_UPLOAD_BYTES:
            logger.warning(f"Rejected upload {name}: {len(content)} bytes")
            self.state.error = FILE_TOO_LARGE_MESSAGE
            return False

        self.state.uploaded_file = UploadedFile(name=name, mime_type=mime_type, content=content)
        self.state.error = None
        return True

    def clear_file(self) -> None:
        self.state.uploaded_file = None

    def submit(self) -> bool:
        """
        Runs one submission. Returns True when a result was stored.
        Never raises: every failure ends as `error` with the phase back to idle.
        """
        if not self._acquire():
            return False
        state = self.state
        state.phase = Phase.VALIDATING

        state.error = None
        state.result = None
        try:
            problem = self._validate(state)
            if problem:
                state.error = problem
                return False

            state.phase = Phase.SUBMITTING
            path, payload = self._build_request(state)
            response = self.relay.post(path, payload)
            self._apply_result(state, response)
            return True

        except ExtractionError as e:
            logger.warning(f"Extraction failed for {state.uploaded_file.name if state.uploaded_file else '?'}: {e}")
            state.error = str(e)
        except RelayRequestError as e:
            state.error = e.message
        except Exception:
            logger.error("Unexpected failure during submit", exc_info=True)
            state.error = GENERIC_FAILURE_MESSAGE
        finally:
            state.phase = Phase.IDLE
            self._release()
        return False

    def translate_topic(self, index: int) -> bool:
        """Fetches the English rendering of one suggested topic."""
        suggestion = self.state.result
        if not isinstance(suggestion, ThesisSuggestion) or not 0 <= index < len(suggestion.topics):
            return False

        topic = suggestion.topics[index]
        if topic.english:
            return True
        if not self._acquire():
            return False
        try:
            response = self.relay.post("translate", {"text": topic.persian})
        except RelayRequestError as e:
            self.state.error = e.message
            return False
        finally:
            self._release()

        topic.english = Translation.from_payload(response).translation or None
        return topic.english is not None

    # --------------------------------------------
    # Internals
    # --------------------------------------------
    def _acquire(self) -> bool:
        with self._lock:
            if self._in_flight:
                logger.warning("Request ignored: another relay call is still in flight")
                return False
            self._in_flight = True
            return True

    def _release(self) -> None:
        with self._lock:
            self._in_flight = False

    def _validate(self, state: AppState) -> Optional[str]:
        mode, data = state.mode, state.data
        if mode not in REQUIRED_MESSAGES:
            return NO_REQUEST_MESSAGE

        if mode is TaskMode.TOPIC:
            ok = is_nonempty_text(data.fieldOfStudy)
        elif mode in (TaskMode.ARTICLE, TaskMode.LITERATURE):
            ok = is_nonempty_text(data.keywords)
        elif mode is TaskMode.PRE_PROPOSAL:
            ok = is_nonempty_text(data.topic)
        elif mode is TaskMode.SUMMARIZE:
            ok = state.uploaded_file is not None
        elif mode is TaskMode.EVALUATE:
            ok = state.uploaded_file is not None or any(
                is_nonempty_text(getattr(data, name)) for name in EVALUATION_SECTIONS
            )
        elif mode is TaskMode.TRANSLATE:
            ok = is_nonempty_text(data.text)
            if ok and count_words(data.text) > MAX_TRANSLATE_WORDS:
                return WORD_LIMIT_MESSAGE
        else:
            ok = is_nonempty_text(data.message)

        return None if ok else REQUIRED_MESSAGES[mode]

    def _document_text(self, state: AppState) -> str:
        upload = state.uploaded_file
        return self.documents.extract(upload.content, upload.mime_type)

    def _build_request(self, state: AppState) -> Tuple[str, Dict[str, Any]]:
        mode, data = state.mode, state.data

        if mode is TaskMode.TOPIC:
            return "chat", _non_empty(data, ("fieldOfStudy", "keywords", "level", "methodology", "targetPopulation"))
        if mode is TaskMode.ARTICLE:
            return "scholar", {"keywords": data.keywords.strip()}
        if mode is TaskMode.LITERATURE:
            return "literature", {"keywords": data.keywords.strip()}
        if mode is TaskMode.PRE_PROPOSAL:
            return "pre-proposal", _non_empty(data, ("topic", "level", "methodology", "targetPopulation"))
        if mode is TaskMode.SUMMARIZE:
            content = self._document_text(state)
            if len(content.strip()) < MIN_SUMMARY_CHARS:
                raise ExtractionError(SHORT_DOCUMENT_MESSAGE)
            return "summarize", {"content": content}
        if mode is TaskMode.EVALUATE:
            payload = _non_empty(data, EVALUATION_SECTIONS)
            if state.uploaded_file is not None:
                payload["fullText"] = self._document_text(state)
            return "evaluate-proposal", payload
        if mode is TaskMode.TRANSLATE:
            return "general-translate", {"text": data.text.strip(), "tone": data.tone, "direction": data.direction}

        messages = list(data.history) + [{"role": "user", "content": data.message.strip()}]
        return "chat-bot", {"messages": messages}

    def _apply_result(self, state: AppState, response: Any) -> None:
        if isinstance(state.data, ChatInput):
            reply = response.get("response") if isinstance(response, dict) else None
            reply = reply if isinstance(reply, str) else ""
            state.data.history.append({"role": "user", "content": state.data.message.strip()})
            state.data.history.append({"role": "assistant", "content": reply})
            state.data.message = ""
            state.result = reply
            return

        state.result = RESULT_BUILDERS[state.mode](response)
