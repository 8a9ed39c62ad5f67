"""
Reduction of fetched documents (HTML, PDF, plain text) to plain text.
"""

import io
import re

import pdfplumber
from bs4 import BeautifulSoup

from guidance_credibility.errors import ParseFailureError

HTML = "text/html"
PDF = "application/pdf"
PLAIN_TEXT = "text/plain"

_WHITESPACE = re.compile(r"\s+")


def content_type_for(file_name: str, header: str = "") -> str:
    """Classify a document from its Content-Type header or file extension."""
    header = header.lower()
    if "pdf" in header:
        return PDF
    if "html" in header or "xml" in header:
        return HTML

    name = file_name.lower()
    if name.endswith(".pdf"):
        return PDF
    if name.endswith(".txt"):
        return PLAIN_TEXT
    return HTML


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def html_to_text(html: str) -> str:
    """Body text of an HTML document, scripts and styles removed."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    root = soup.body or soup
    return collapse_whitespace(root.get_text(" "))


def pdf_to_text(content: bytes) -> str:
    """
    Text of every page of a PDF.

    Raises:
        ParseFailureError: If the bytes are not a readable PDF
    """
    try:
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        raise ParseFailureError(f"Unreadable PDF: {e}") from e
    return collapse_whitespace(" ".join(pages))


def document_to_text(content: bytes, content_type: str) -> str:
    """Dispatch on content type and return normalized plain text."""
    if content_type == PDF:
        return pdf_to_text(content)
    text = content.decode("utf-8", errors="replace")
    if content_type == PLAIN_TEXT:
        return collapse_whitespace(text)
    return html_to_text(text)
