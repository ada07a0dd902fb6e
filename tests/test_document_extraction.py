import io

import docx
import fitz
import pytest

from services.document_extraction import (
    NO_TEXT_PDF_MESSAGE,
    UNREADABLE_MESSAGE,
    UNSUPPORTED_MESSAGE,
    DocumentTextService,
    ExtractionError,
    PdfExtractor,
)
from utils.limits import DOCX_MIME, PDF_MIME, TEXT_MIME


def make_pdf(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def make_docx(*paragraphs: str) -> bytes:
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def test_pdf_text_is_extracted():
    service = DocumentTextService()
    text = service.extract(make_pdf("Research method section", "Results section"), PDF_MIME)
    assert "Research method section" in text
    assert "Results section" in text


def test_pdf_page_cap():
    text = PdfExtractor(max_pages=2).extract(make_pdf("page one", "page two", "page three"))
    assert "page two" in text
    assert "page three" not in text


def test_scanned_pdf_without_text_layer_is_rejected():
    with pytest.raises(ExtractionError) as exc:
        DocumentTextService().extract(make_pdf(""), PDF_MIME)
    assert str(exc.value) == NO_TEXT_PDF_MESSAGE


def test_corrupt_pdf_is_rejected():
    with pytest.raises(ExtractionError) as exc:
        DocumentTextService().extract(b"%PDF-1.4 not really a pdf", PDF_MIME)
    # MuPDF may either refuse the stream or repair it into an empty document
    assert str(exc.value) in (UNREADABLE_MESSAGE, NO_TEXT_PDF_MESSAGE)


def test_docx_paragraphs_are_joined():
    text = DocumentTextService().extract(make_docx("بیان مسئله", "اهداف تحقیق"), DOCX_MIME)
    assert text == "بیان مسئله\nاهداف تحقیق"


def test_plain_text_passthrough_and_truncation():
    service = DocumentTextService(max_chars=10)
    assert service.extract("\ufeffhello world, this is long".encode("utf-8"), TEXT_MIME) == "hello worl"


def test_unsupported_type():
    with pytest.raises(ExtractionError) as exc:
        DocumentTextService().extract(b"GIF89a", "image/gif")
    assert str(exc.value) == UNSUPPORTED_MESSAGE


def test_extractors_are_injectable():
    class StubExtractor:
        def extract(self, content):
            return content.decode() * 2

    service = DocumentTextService(extractors={"text/csv": StubExtractor()})
    assert service.extract(b"ab", "text/csv") == "abab"


def test_docx_table_text_is_included():
    document = docx.Document()
    document.add_paragraph("جدول متغیرها")
    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "متغیر مستقل"
    table.cell(0, 1).text = "آموزش مجازی"
    merged = table.cell(1, 0).merge(table.cell(1, 1))
    merged.text = "جامعه آماری"
    buffer = io.BytesIO()
    document.save(buffer)

    text = DocumentTextService().extract(buffer.getvalue(), DOCX_MIME)
    assert text == "جدول متغیرها\nمتغیر مستقل | آموزش مجازی\nجامعه آماری"
