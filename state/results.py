# state/results.py
"""
Typed result envelopes. Every builder is lenient: a missing or wrong-typed
field becomes an empty value so a malformed payload still renders.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in (_text(item) for item in value) if v]


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass
class TopicItem:
    persian: str
    english: Optional[str] = None


@dataclass
class ThesisSuggestion:
    keywords: List[str] = field(default_factory=list)
    topics: List[TopicItem] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "ThesisSuggestion":
        data = _dict(payload)
        return cls(
            keywords=_text_list(data.get("keywords")),
            topics=[TopicItem(persian=t) for t in _text_list(data.get("topics"))],
        )


@dataclass
class Article:
    title: str = ""
    authors: List[str] = field(default_factory=list)
    publicationYear: Optional[int] = None
    summary: str = ""
    link: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "Article":
        data = _dict(payload)
        year = data.get("publicationYear")
        if isinstance(year, str) and year.strip().isdigit():
            year = int(year.strip())
        return cls(
            title=_text(data.get("title")),
            authors=_text_list(data.get("authors")),
            publicationYear=year if isinstance(year, int) and not isinstance(year, bool) else None,
            summary=_text(data.get("summary")),
            link=_text(data.get("link")),
        )


def articles_from_payload(payload: Any) -> List[Article]:
    if not isinstance(payload, list):
        return []
    return [Article.from_payload(item) for item in payload if isinstance(item, dict)]


@dataclass
class LiteratureItem:
    paragraph: str = ""
    reference: str = ""


@dataclass
class LiteratureReview:
    items: List[LiteratureItem] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "LiteratureReview":
        items = _dict(payload).get("items")
        if not isinstance(items, list):
            return cls()
        return cls(items=[
            LiteratureItem(paragraph=_text(i.get("paragraph")), reference=_text(i.get("reference")))
            for i in items if isinstance(i, dict)
        ])


@dataclass
class Methodology:
    researchTypeAndDesign: str = ""
    populationAndSample: str = ""
    dataCollectionTools: str = ""
    dataAnalysisMethod: str = ""
    potentialSoftware: str = ""


@dataclass
class PreProposal:
    introduction: str = ""
    mainObjective: str = ""
    specificObjectives: List[str] = field(default_factory=list)
    mainQuestion: str = ""
    specificQuestions: List[str] = field(default_factory=list)
    methodology: Methodology = field(default_factory=Methodology)

    @classmethod
    def from_payload(cls, payload: Any) -> "PreProposal":
        data = _dict(payload)
        method = _dict(data.get("methodology"))
        return cls(
            introduction=_text(data.get("introduction")),
            mainObjective=_text(data.get("mainObjective")),
            specificObjectives=_text_list(data.get("specificObjectives")),
            mainQuestion=_text(data.get("mainQuestion")),
            specificQuestions=_text_list(data.get("specificQuestions")),
            methodology=Methodology(**{k: _text(method.get(k)) for k in Methodology.__dataclass_fields__}),
        )


@dataclass
class ArticleSummary:
    title: str = ""
    introduction: str = ""
    researchMethod: str = ""
    dataCollectionMethod: str = ""
    statisticalPopulation: str = ""
    dataAnalysisMethod: str = ""
    results: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "ArticleSummary":
        data = _dict(payload)
        return cls(**{k: _text(data.get(k)) for k in cls.__dataclass_fields__})


@dataclass
class EvaluationPoint:
    weakness: str = ""
    improvement: str = ""


@dataclass
class Evaluation:
    score: int = 0
    points: List[EvaluationPoint] = field(default_factory=list)
    overallComment: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "Evaluation":
        data = _dict(payload)
        score = data.get("score")
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not math.isfinite(score):
            score = 0
        points = data.get("points") if isinstance(data.get("points"), list) else []
        return cls(
            score=max(0, min(100, int(round(score)))),
            points=[
                EvaluationPoint(weakness=_text(p.get("weakness")), improvement=_text(p.get("improvement")))
                for p in points if isinstance(p, dict)
            ],
            overallComment=_text(data.get("overallComment")),
        )

    @property
    def band(self) -> str:
        if self.score >= 80:
            return "good"
        if self.score >= 60:
            return "fair"
        return "weak"


@dataclass
class Translation:
    translation: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "Translation":
        return cls(translation=_text(_dict(payload).get("translation")))
