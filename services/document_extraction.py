# File: services/document_extraction.py
import io
import logging
from typing import Dict, Optional, Protocol

import docx
import fitz

from utils.limits import DOCX_MIME, MAX_EXTRACTED_CHARS, MAX_PDF_PAGES, PDF_MIME, TEXT_MIME
from utils.sanitization import strip_control_chars, truncate

logger = logging.getLogger(__name__)

NO_TEXT_PDF_MESSAGE = "فایل PDF فاقد محتوای متنی قابل استخراج است (احتمالاً اسکن‌شده است). لطفاً فایلی با متن قابل انتخاب بارگذاری کنید."
UNREADABLE_MESSAGE = "خواندن محتوای فایل با شکست مواجه شد. لطفاً از سالم بودن فایل اطمینان حاصل کنید."
EMPTY_DOCUMENT_MESSAGE = "فایل انتخاب‌شده فاقد متن قابل استفاده است."
UNSUPPORTED_MESSAGE = "فرمت فایل پشتیبانی نمی‌شود. فقط فایل‌های PDF، Word (DOCX) و متنی مجاز هستند."


class ExtractionError(Exception):
    """Raised when a document cannot be turned into plain text."""
    pass


class DocumentExtractor(Protocol):
    def extract(self, content: bytes) -> str:
        ...


class PdfExtractor:
    def __init__(self, max_pages: int = MAX_PDF_PAGES):
        self.max_pages = max_pages

    def extract(self, content: bytes) -> str:
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except Exception as e:
            logger.warning(f"PDF open error: {e}")
            raise ExtractionError(UNREADABLE_MESSAGE) from e

        try:
            pages = [doc[i].get_text("text") for i in range(min(doc.page_count, self.max_pages))]
        finally:
            doc.close()

        text = strip_control_chars("\n".join(pages))
        if not text:
            # Image-only PDF: no text layer to send
            raise ExtractionError(NO_TEXT_PDF_MESSAGE)
        return text


def _table_lines(document):
    """One line per table row; merged cells repeat in python-docx, so each text is kept once per row."""
    for table in document.tables:
        for row in table.rows:
            cells = []
            for cell in row.cells:
                text = cell.text.strip()
                if text and text not in cells:
                    cells.append(text)
            if cells:
                yield " | ".join(cells)


class DocxExtractor:
    def extract(self, content: bytes) -> str:
        try:
            document = docx.Document(io.BytesIO(content))
        except Exception as e:
            logger.warning(f"DOCX open error: {e}")
            raise ExtractionError(UNREADABLE_MESSAGE) from e

        lines = [p.text for p in document.paragraphs]
        lines.extend(_table_lines(document))
        text = strip_control_chars("\n".join(lines))
        if not text:
            raise ExtractionError(EMPTY_DOCUMENT_MESSAGE)
        return text


class PlainTextExtractor:
    def extract(self, content: bytes) -> str:
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ExtractionError(UNREADABLE_MESSAGE) from e

        text = strip_control_chars(text)
        if not text:
            raise ExtractionError(EMPTY_DOCUMENT_MESSAGE)
        return text


def default_extractors() -> Dict[str, DocumentExtractor]:
    return {
        PDF_MIME: PdfExtractor(),
        DOCX_MIME: DocxExtractor(),
        TEXT_MIME: PlainTextExtractor(),
    }


class DocumentTextService:
    """
    Dispatches to one extractor per MIME type and bounds the result to the
    character budget the relay accepts.
    """

    def __init__(self, extractors: Optional[Dict[str, DocumentExtractor]] = None,
                 max_chars: int = MAX_EXTRACTED_CHARS):
        self.extractors = extractors if extractors is not None else default_extractors()
        self.max_chars = max_chars

    def extract(self, content: bytes, mime_type: str) -> str:
        extractor = self.extractors.get(mime_type)
        if extractor is None:
            raise ExtractionError(UNSUPPORTED_MESSAGE)

        text = extractor.extract(content)
        if len(text) > self.max_chars:
            logger.info(f"Truncating extracted text from {len(text)} to {self.max_chars} characters")
        return truncate(text, self.max_chars)
