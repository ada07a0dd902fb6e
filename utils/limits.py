# utils/limits.py
# Limits shared by the relay endpoints and the orchestrator.

MAX_UPLOAD_BYTES = 4 * 1024 * 1024
MAX_PDF_PAGES = 30
MAX_EXTRACTED_CHARS = 30000

MAX_TRANSLATE_WORDS = 500
MIN_SUMMARY_CHARS = 100

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"

ALLOWED_UPLOAD_TYPES = (PDF_MIME, DOCX_MIME, TEXT_MIME)
