# api/models/relay_models.py
from pydantic import BaseModel, Field
from typing import List, Literal, Optional

AcademicLevel = Literal["arshad", "doctora"]
ResearchMethod = Literal["quantitative", "qualitative", "mixed"]
TranslationTone = Literal["formal", "informal", "academic"]
TranslationDirection = Literal["fa-en", "en-fa"]


class ThesisSuggestionRequest(BaseModel):
    fieldOfStudy: Optional[str] = None
    keywords: Optional[str] = None
    level: Optional[AcademicLevel] = None
    methodology: Optional[ResearchMethod] = None
    targetPopulation: Optional[str] = None


class KeywordsRequest(BaseModel):
    keywords: Optional[str] = None


class PreProposalRequest(BaseModel):
    topic: Optional[str] = None
    level: Optional[AcademicLevel] = None
    methodology: Optional[ResearchMethod] = None
    targetPopulation: Optional[str] = None


class SummarizeRequest(BaseModel):
    content: Optional[str] = None


class ProposalContent(BaseModel):
    statement: Optional[str] = None
    significance: Optional[str] = None
    objectives: Optional[str] = None
    questions: Optional[str] = None
    methodology: Optional[str] = None
    fullText: Optional[str] = Field(None, description="Text extracted from an uploaded proposal document")


class TranslateRequest(BaseModel):
    text: Optional[str] = None


class GeneralTranslateRequest(BaseModel):
    text: Optional[str] = None
    tone: TranslationTone = "academic"
    direction: TranslationDirection = "en-fa"


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: Optional[List[ChatMessage]] = None
