#File: services/prompts.py
import textwrap
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from utils.sanitization import is_nonempty_text


class MissingSlotError(ValueError):
    """Raised when a template is rendered without one of its required slots."""

    def __init__(self, template: str, slots: List[str]):
        super().__init__(f"Template '{template}' is missing required slots: {', '.join(slots)}")
        self.template = template
        self.slots = slots


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    template: str
    required: Tuple[str, ...] = ()
    optional: Tuple[str, ...] = ()
    json_mode: bool = True
    temperature: float = 0.7
    top_p: Optional[float] = None
    system: str = ""

    def render(self, **slots) -> str:
        missing = [s for s in self.required if not is_nonempty_text(slots.get(s))]
        if missing:
            raise MissingSlotError(self.name, missing)

        unknown = set(slots) - set(self.required) - set(self.optional)
        if unknown:
            raise ValueError(f"Template '{self.name}' has no slots named: {', '.join(sorted(unknown))}")

        values = {slot: "" for slot in self.optional}
        values.update({k: v for k, v in slots.items() if v is not None})
        return textwrap.dedent(self.template).format(**values).strip()

    def messages(self, **slots) -> List[Dict[str, str]]:
        messages = []
        if self.system:
            messages.append({"role": "system", "content": textwrap.dedent(self.system).strip()})
        messages.append({"role": "user", "content": self.render(**slots)})
        return messages


SYSTEM_PROMPTS: Dict[str, str] = {
    "chat": """
    You are an experienced university professor acting as a thesis supervisor (استاد راهنما).
    You guide students on research topics, methodology, academic writing and the structure of a thesis.

    Rules:
    1. Always answer in Persian (Farsi).
    2. Keep a formal, academic and precise tone.
    3. Do not write the student's thesis for them. Give guidance, examples and corrections instead.
    4. If the question is not academic, politely bring the conversation back to research.
    """,
}

PROMPT_TEMPLATES: Dict[str, PromptTemplate] = {
    "topic_simple": PromptTemplate(
        name="topic_simple",
        required=("field_of_study",),
        temperature=0.8,
        top_p=0.95,
        template="""
        برای رشته تحصیلی «{field_of_study}» موارد زیر را تولید کن:
        1. فهرستی از 5 تا 10 کلیدواژه تخصصی و مهم.
        2. فهرستی از 3 تا 5 موضوع پیشنهادی برای پایان‌نامه که جدید و کاربردی باشند.

        خروجی فقط یک آبجکت JSON معتبر با دو کلید "keywords" و "topics" باشد که هر دو آرایه‌ای از رشته‌ها هستند.
        هیچ متن یا توضیح دیگری خارج از JSON ننویس.
        """,
    ),
    "topic_advanced": PromptTemplate(
        name="topic_advanced",
        required=("field_of_study",),
        optional=("keywords", "level_text", "method_text", "population_text", "level_note"),
        temperature=0.8,
        top_p=0.95,
        template="""
        به عنوان مشاور متخصص پایان‌نامه، برای رشته تحصیلی «{field_of_study}» و با توجه به اطلاعات تکمیلی زیر، موارد زیر را تولید کن:
        1. فهرستی از 5 تا 10 کلیدواژه تخصصی و مهم.
        2. فهرستی از 3 تا 5 موضوع پیشنهادی برای پایان‌نامه که جدید، خلاقانه و قابل پژوهش باشند.

        اطلاعات تکمیلی:
        - کلیدواژه‌های اولیه مدنظر دانشجو: {keywords}
        - مقطع تحصیلی: {level_text}
        - روش تحقیق مورد نظر: {method_text}
        - جامعه هدف: {population_text}
        {level_note}

        خروجی فقط یک آبجکت JSON معتبر با دو کلید "keywords" و "topics" باشد که هر دو آرایه‌ای از رشته‌ها هستند.
        هیچ متن یا توضیح دیگری خارج از JSON ننویس.
        """,
    ),
    "scholar": PromptTemplate(
        name="scholar",
        required=("keywords",),
        temperature=0.5,
        template="""
        You are an academic research assistant who knows real papers indexed by Google Scholar.
        Find 3 recent (published in the last 4 years), highly relevant and REAL English-language
        academic articles for these Persian keywords: "{keywords}".

        Steps:
        1. Translate the Persian keywords into effective English search terms (internally).
        2. Pick real articles from reputable academic sources.
        3. For each article give:
           - title: the full title
           - authors: an array of the main authors' names
           - publicationYear: the year as a number
           - summary: one or two sentences summarising the abstract
           - link: a direct, working URL to the article page. Never fabricate links.

        Return only a JSON object with a single key "articles" holding the array of 3 articles.
        No markdown, no text outside the JSON object.
        """,
    ),
    "literature": PromptTemplate(
        name="literature",
        required=("keywords",),
        temperature=0.6,
        template="""
        You are an academic research assistant familiar with Iranian academic databases such as Civilica (civilica.com).

        Find 5 high-quality research articles relevant to the keywords "{keywords}" as they would appear in Civilica.
        For each article produce:

        1. paragraph: a Persian summary paragraph following this template exactly:
           "[Author last name] [and colleagues if more than 2 authors] ([Year]) با عنوان «[Title]» به بررسی [Goal] پرداختند. از روش [Method] استفاده کردند و به این نتیجه رسیدند که [Results]."
           - one author: "نام خانوادگی (سال)"
           - two authors: "نام خانوادگی1 و نام خانوادگی2 (سال)"
           - more than two: "نام خانوادگی نفر اول و همکاران (سال)"
        2. reference: the full APA citation, in Persian citation style for Persian articles.

        Return only this JSON object:
        {{"items": [{{"paragraph": "string", "reference": "string"}}]}}
        """,
    ),
    "pre_proposal": PromptTemplate(
        name="pre_proposal",
        required=("topic",),
        optional=("context",),
        temperature=0.7,
        top_p=1.0,
        template="""
        You are an expert academic advisor. Write a pre-proposal in Persian for this thesis topic:
        Thesis Topic: "{topic}"
        {context}

        Instructions:
        1. introduction: a 250-word academic introduction in Persian without subheadings, moving from
           general concepts to the specific problems of the topic.
        2. mainObjective: one main objective. specificObjectives: four specific objectives derived from it.
        3. mainQuestion: one main question matching the main objective. specificQuestions: four specific
           questions matching the four specific objectives one to one.
        4. methodology, based on the questions:
           - researchTypeAndDesign
           - populationAndSample
           - dataCollectionTools
           - dataAnalysisMethod
           - potentialSoftware

        Return only the raw JSON object below, without markdown fences or any other text:
        {{
          "introduction": "string",
          "mainObjective": "string",
          "specificObjectives": ["string", "string", "string", "string"],
          "mainQuestion": "string",
          "specificQuestions": ["string", "string", "string", "string"],
          "methodology": {{
            "researchTypeAndDesign": "string",
            "populationAndSample": "string",
            "dataCollectionTools": "string",
            "dataAnalysisMethod": "string",
            "potentialSoftware": "string"
          }}
        }}
        """,
    ),
    "summarize": PromptTemplate(
        name="summarize",
        required=("content",),
        temperature=0.5,
        template='''
        You are an expert academic researcher. Analyse the article text below and write a structured
        summary in Persian of about 500 words in total.

        ## Article Text:
        """
        {content}
        """

        Extract, in Persian:
        1. title: the article title
        2. introduction: the research problem and its significance
        3. researchMethod: the overall methodology (quantitative, qualitative, mixed, experimental, ...)
        4. dataCollectionMethod: how the data was collected
        5. statisticalPopulation: the target population and the sample
        6. dataAnalysisMethod: how the data was analysed
        7. results: the main findings and conclusions

        Return only a JSON object with exactly these string keys:
        title, introduction, researchMethod, dataCollectionMethod, statisticalPopulation, dataAnalysisMethod, results
        ''',
    ),
    "evaluate": PromptTemplate(
        name="evaluate",
        required=("sections",),
        temperature=0.4,
        template="""
        You are a strict, expert professor and thesis supervisor evaluating a research proposal.
        The student may have provided only some sections.

        Evaluate ONLY the sections below. Do not penalise the student for sections that are missing.

        ## Provided Proposal Sections:
        {sections}

        ## Task:
        1. If related sections are present (for example objectives and questions), check that they align.
        2. Judge the academic tone and the scientific validity of the text.
        3. Identify concrete weaknesses in the provided content.
        4. Suggest concrete scientific improvements.
        5. Give a score from 1 to 100 for the quality of the provided content.

        The output must be in Persian and be a single JSON object:
        {{
          "score": 75,
          "overallComment": "string",
          "points": [{{"weakness": "string", "improvement": "string"}}]
        }}
        Provide between 3 and 6 points.
        """,
    ),
    "translate_topic": PromptTemplate(
        name="translate_topic",
        required=("text",),
        json_mode=False,
        temperature=0.2,
        template="""
        Translate the following academic thesis topic from Persian to English.
        Return ONLY the English translation, without labels, quotation marks or explanations.
        Persian Text: "{text}"
        """,
    ),
    "general_translate": PromptTemplate(
        name="general_translate",
        required=("text", "source_language", "target_language", "tone_instruction"),
        optional=("extra_instruction",),
        json_mode=False,
        temperature=0.3,
        template="""
        Act as a professional bilingual translator.
        Translate the following text from {source_language} to {target_language}.

        Target Tone: {tone_instruction}

        Text to translate:
        "{text}"

        Return ONLY the translated text. Do not add any explanations. {extra_instruction}
        """,
    ),
}


def get_template(name: str) -> PromptTemplate:
    try:
        return PROMPT_TEMPLATES[name]
    except KeyError:
        raise KeyError(f"Unknown prompt template: {name}") from None
