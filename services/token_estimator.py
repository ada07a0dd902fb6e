# services/token_estimator.py
"""
Advisory token-cost estimate shown before a submit. Local and deterministic:
a flat per-mode prompt and output size plus roughly one token per three
characters of user content. Not a tokenizer and never billed.
"""
import math
from dataclasses import dataclass, fields
from typing import Dict, Optional, Tuple

from state.state_schema import FILE_MODES, ChatInput, ModeInput, TaskMode
from utils.limits import MAX_EXTRACTED_CHARS

GRANULARITY = 50
CHARS_PER_TOKEN = 3

# Mode -> (base prompt tokens, expected output tokens)
MODE_COSTS: Dict[TaskMode, Tuple[int, int]] = {
    TaskMode.TOPIC: (200, 400),
    TaskMode.ARTICLE: (300, 600),
    TaskMode.LITERATURE: (350, 1200),
    TaskMode.PRE_PROPOSAL: (450, 1500),
    TaskMode.SUMMARIZE: (350, 1000),
    TaskMode.EVALUATE: (450, 800),
    TaskMode.TRANSLATE: (120, 0),
    TaskMode.CHAT: (150, 500),
}

# Mode -> input fields whose text counts towards the estimate
QUALIFYING_FIELDS: Dict[TaskMode, Tuple[str, ...]] = {
    TaskMode.TOPIC: ("fieldOfStudy", "keywords", "targetPopulation"),
    TaskMode.ARTICLE: ("keywords",),
    TaskMode.LITERATURE: ("keywords",),
    TaskMode.PRE_PROPOSAL: ("topic", "targetPopulation"),
    TaskMode.SUMMARIZE: (),
    TaskMode.EVALUATE: ("statement", "significance", "objectives", "questions", "methodology"),
    TaskMode.TRANSLATE: ("text",),
    TaskMode.CHAT: ("message",),
}


@dataclass(frozen=True)
class TokenEstimate:
    input: int = 0
    output: int = 0

    @property
    def total(self) -> int:
        return self.input + self.output

    def to_dict(self) -> Dict[str, int]:
        return {"input": self.input, "output": self.output, "total": self.total}


ZERO = TokenEstimate()


def text_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def round_up(tokens: int) -> int:
    return max(GRANULARITY, math.ceil(tokens / GRANULARITY) * GRANULARITY)


def _field_texts(mode: TaskMode, data: ModeInput):
    names = {f.name for f in fields(data)} if data is not None else set()
    for name in QUALIFYING_FIELDS.get(mode, ()):
        value = getattr(data, name) if name in names else None
        if isinstance(value, str) and value.strip():
            yield value.strip()


def estimate_tokens(mode: TaskMode, data: ModeInput, file_size: Optional[int] = None) -> TokenEstimate:
    if mode not in MODE_COSTS:
        return ZERO

    base, expected_output = MODE_COSTS[mode]
    texts = list(_field_texts(mode, data))

    if mode in FILE_MODES and file_size:
        # The server truncates extracted text, so the file size is capped the same way
        content = math.ceil(min(file_size, MAX_EXTRACTED_CHARS) / CHARS_PER_TOKEN)
    elif texts:
        if isinstance(data, ChatInput):
            texts = [m.get("content", "") for m in data.history] + texts
        content = text_tokens("\n".join(texts))
    else:
        return ZERO

    output = content if mode == TaskMode.TRANSLATE else expected_output
    return TokenEstimate(input=round_up(base + content), output=round_up(output))
