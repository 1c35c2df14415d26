"""Tests for PDF text extraction."""

import io

import pytest
from pypdf import PdfWriter

from shared.exceptions.errors import ExtractionError
from services.document_chat.PdfTextExtractor import PdfTextExtractor

from conftest import text_pdf


def blank_pdf(pages: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestPdfTextExtractor:

    def test_empty_bytes_raise(self, helper_config):
        with pytest.raises(ExtractionError):
            PdfTextExtractor(helper_config).extract_sync(b"")

    def test_garbage_bytes_raise(self, helper_config):
        with pytest.raises(ExtractionError):
            PdfTextExtractor(helper_config).extract_sync(b"this is not a pdf at all")

    def test_extracts_page_text(self, helper_config):
        text = PdfTextExtractor(helper_config).extract_sync(text_pdf("Revenue grew by twelve percent."))
        assert "Revenue grew by twelve percent." in text

    def test_pages_joined_in_order_by_blank_line(self, helper_config):
        text = PdfTextExtractor(helper_config).extract_sync(text_pdf("Alpha.", "Beta.", "Gamma."))
        pages = text.split("\n\n")
        assert len(pages) == 3
        assert [page.strip() for page in pages] == ["Alpha.", "Beta.", "Gamma."]

    def test_blank_pages_give_no_text(self, helper_config):
        text = PdfTextExtractor(helper_config).extract_sync(blank_pdf(pages=2))
        assert text.strip() == ""

    @pytest.mark.asyncio
    async def test_extract_runs_off_the_event_loop(self, helper_config):
        text = await PdfTextExtractor(helper_config).extract(blank_pdf())
        assert text.strip() == ""

    @pytest.mark.asyncio
    async def test_async_extract_propagates_errors(self, helper_config):
        with pytest.raises(ExtractionError):
            await PdfTextExtractor(helper_config).extract(b"%PDF-1.4 broken")
