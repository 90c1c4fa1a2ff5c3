"""
Plain-text extraction for uploaded offer documents (text, DOCX, PDF).
"""
import io
import logging
from typing import Optional

import docx2txt
import PyPDF2

from retrospect.core.exceptions import UnsupportedDocument

logger = logging.getLogger(__name__)

PDF_TYPES = {"application/pdf"}
DOCX_TYPES = {
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
}
TEXT_EXTENSIONS = (".txt", ".md")


def _extension(filename: Optional[str]) -> str:
    return ("." + filename.rsplit(".", 1)[-1].lower()) if filename and "." in filename else ""


def extract_pdf_text(data: bytes) -> str:
    """Page texts joined with blank lines."""
    reader = PyPDF2.PdfReader(io.BytesIO(data))
    pages = [page.extract_text() or "" for page in reader.pages]
    logger.info("Extracted text from PDF (%d pages)", len(pages))
    return "\n\n".join(pages)


def extract_docx_text(data: bytes) -> str:
    return docx2txt.process(io.BytesIO(data)) or ""


def extract_text(filename: Optional[str], content_type: Optional[str], data: bytes) -> str:
    ext = _extension(filename)
    if content_type in PDF_TYPES or ext == ".pdf":
        return extract_pdf_text(data)
    if content_type in DOCX_TYPES or ext == ".docx":
        return extract_docx_text(data)
    if (content_type or "").startswith("text/") or ext in TEXT_EXTENSIONS:
        return data.decode("utf-8", errors="replace")
    raise UnsupportedDocument(content_type)
