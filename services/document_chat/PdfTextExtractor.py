import asyncio
import io

from pypdf import PdfReader

from shared.exceptions.errors import ExtractionError
from shared.helper.HelperConfig import HelperConfig


class PdfTextExtractor:
    """Extracts plain text from PDF bytes with pypdf."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()

    def extract_sync(self, pdf_bytes: bytes) -> str:
        """Extract the text of every page, pages separated by a blank line.

        Args:
            pdf_bytes (bytes): The raw PDF file.

        Returns:
            str: The extracted text (may be empty for image-only PDFs).

        Raises:
            ExtractionError: If the bytes are not a readable PDF.
        """
        if not pdf_bytes:
            raise ExtractionError("Uploaded document is empty.")
        try:
            reader = PdfReader(io.BytesIO(pdf_bytes))
            pages = [page.extract_text() or "" for page in reader.pages]
        except Exception as exc:
            # pypdf raises assorted exception types on damaged files
            self.logging.error("Error reading PDF: %s", exc)
            raise ExtractionError(f"Could not read PDF: {exc}") from exc
        return "\n\n".join(pages)

    async def extract(self, pdf_bytes: bytes) -> str:
        """Extract text off the event loop; pypdf parsing is CPU-bound."""
        return await asyncio.to_thread(self.extract_sync, pdf_bytes)
