# File: state/state_schema.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union


class TaskMode(str, Enum):
    HOME = "home"
    TOPIC = "topic"
    ARTICLE = "article"
    LITERATURE = "literature"
    PRE_PROPOSAL = "pre-proposal"
    SUMMARIZE = "summarize"
    EVALUATE = "evaluate"
    TRANSLATE = "translate"
    CHAT = "chat"
    CONTACT = "contact"


class Phase(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"


# ------------------------------------------------------------
# Per-mode input records
# ------------------------------------------------------------
@dataclass
class EmptyInput:
    pass


@dataclass
class TopicInput:
    fieldOfStudy: str = ""
    keywords: str = ""
    level: Optional[str] = None            # 'arshad' | 'doctora'
    methodology: Optional[str] = None      # 'quantitative' | 'qualitative' | 'mixed'
    targetPopulation: str = ""


@dataclass
class ArticleInput:
    keywords: str = ""


@dataclass
class LiteratureInput:
    keywords: str = ""


@dataclass
class PreProposalInput:
    topic: str = ""
    level: Optional[str] = None
    methodology: Optional[str] = None
    targetPopulation: str = ""


@dataclass
class SummarizeInput:
    pass


@dataclass
class EvaluateInput:
    statement: str = ""
    significance: str = ""
    objectives: str = ""
    questions: str = ""
    methodology: str = ""


@dataclass
class TranslateInput:
    text: str = ""
    tone: str = "academic"                 # 'formal' | 'informal' | 'academic'
    direction: str = "en-fa"               # 'fa-en' | 'en-fa'


@dataclass
class ChatInput:
    message: str = ""
    history: List[Dict[str, str]] = field(default_factory=list)


ModeInput = Union[
    EmptyInput, TopicInput, ArticleInput, LiteratureInput, PreProposalInput,
    SummarizeInput, EvaluateInput, TranslateInput, ChatInput,
]

MODE_INPUTS: Dict[TaskMode, Type] = {
    TaskMode.HOME: EmptyInput,
    TaskMode.TOPIC: TopicInput,
    TaskMode.ARTICLE: ArticleInput,
    TaskMode.LITERATURE: LiteratureInput,
    TaskMode.PRE_PROPOSAL: PreProposalInput,
    TaskMode.SUMMARIZE: SummarizeInput,
    TaskMode.EVALUATE: EvaluateInput,
    TaskMode.TRANSLATE: TranslateInput,
    TaskMode.CHAT: ChatInput,
    TaskMode.CONTACT: EmptyInput,
}

FILE_MODES = {TaskMode.SUMMARIZE, TaskMode.EVALUATE}


@dataclass
class UploadedFile:
    name: str
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class AppState:
    """
    The whole client state. `data` is always the input record of `mode`;
    a mode switch replaces the whole value instead of resetting fields.
    """
    mode: TaskMode = TaskMode.HOME
    data: ModeInput = field(default_factory=EmptyInput)
    phase: Phase = Phase.IDLE
    uploaded_file: Optional[UploadedFile] = None
    result: Any = None
    error: Optional[str] = None

    @classmethod
    def for_mode(cls, mode: TaskMode) -> "AppState":
        mode = TaskMode(mode)
        return cls(mode=mode, data=MODE_INPUTS[mode]())
