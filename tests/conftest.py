"""
Shared test fixtures for the docurag test suite.

Provides reusable fixtures: config helper, environment, and in-memory
stand-ins for the embedding, generation and vector-store backends.
"""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.clients.rag.models.SearchHit import SearchHit
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.exceptions.errors import CollectionNotFoundError, ExtractionError, GenerationServiceError, VectorStoreError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from services.document_chat.CleanupService import CleanupService
from services.document_chat.SessionRegistry import SessionRegistry

VECTOR_SIZE = 3

_ENV_KEYS = [
    "CHUNK_SIZE", "CHUNK_OVERLAP", "CHUNK_SNAP_TO_BOUNDARIES", "SEARCH_LIMIT", "SOURCE_PREVIEW_CHARS",
    "SESSION_MODE", "SESSION_IDLE_TTL", "SESSION_REAP_INTERVAL", "SESSION_CLEANUP_ON_SHUTDOWN",
    "UPLOAD_MAX_BYTES", "EMBED_VECTOR_SIZE", "EMBED_CONCURRENCY", "EMBED_DISTANCE", "LLM_CHAT_MODEL",
    "EMBED_TIMEOUT", "LLM_TIMEOUT", "RAG_TIMEOUT", "EMBED_OLLAMA_API_KEY", "LLM_OLLAMA_API_KEY", "RAG_QDRANT_API_KEY",
]


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def base_env(monkeypatch):
    """Backend settings every client needs; tunables are reset to their defaults."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("EMBED_ENGINE", "ollama")
    monkeypatch.setenv("EMBED_OLLAMA_BASE_URL", "http://ollama:11434")
    monkeypatch.setenv("EMBED_MODEL", "nomic-embed-text")
    monkeypatch.setenv("LLM_ENGINE", "ollama")
    monkeypatch.setenv("LLM_OLLAMA_BASE_URL", "http://ollama:11434")
    monkeypatch.setenv("RAG_ENGINE", "qdrant")
    monkeypatch.setenv("RAG_QDRANT_BASE_URL", "http://qdrant:6333")
    return monkeypatch


@pytest.fixture
def logger():
    return ColorLogger(logging.getLogger("docurag.tests"))


@pytest.fixture
def helper_config(logger):
    return HelperConfig(logger=logger)


# ---------------------------------------------------------------------------
# Backend stand-ins
# ---------------------------------------------------------------------------

def fake_vector(text: str) -> list[float]:
    """Deterministic 3-dimensional vector derived from the text."""
    return [float(len(text)), float(sum(map(ord, text)) % 97), 1.0]


class InMemoryVectorStore:
    """Vector store with the RAG client surface, keeping collections in a dict.

    Search ranks by insertion order, which keeps results predictable.
    """

    def __init__(self):
        self.collections: dict[str, list[VectorPoint]] = {}
        self.sizes: dict[str, int] = {}
        self.fail_delete: set[str] = set()
        self.fail_upsert = False
        self.deleted: list[str] = []

    async def do_create_collection(self, collection_name: str, vector_size: int, distance: str = "Cosine") -> None:
        if collection_name in self.collections:
            raise VectorStoreError(f"Collection '{collection_name}' already exists.")
        self.collections[collection_name] = []
        self.sizes[collection_name] = vector_size

    async def do_delete_collection(self, collection_name: str) -> None:
        if collection_name in self.fail_delete:
            raise VectorStoreError(f"Delete collection on collection '{collection_name}' failed with status 500.")
        if collection_name not in self.collections:
            raise CollectionNotFoundError(collection_name)
        del self.collections[collection_name]
        self.deleted.append(collection_name)

    async def do_upsert_points(self, collection_name: str, points: list[VectorPoint]) -> None:
        if self.fail_upsert:
            raise VectorStoreError(f"Upsert into collection '{collection_name}' was not completed.")
        if collection_name not in self.collections:
            raise CollectionNotFoundError(collection_name)
        self.collections[collection_name].extend(points)

    async def do_search(self, collection_name: str, query_vector: list[float], limit: int) -> list[SearchHit]:
        if collection_name not in self.collections:
            raise CollectionNotFoundError(collection_name)
        points = self.collections[collection_name][:limit]
        return [
            SearchHit(id=point.id, score=1.0 - rank * 0.1, payload=point.payload)
            for rank, point in enumerate(points)
        ]


class FakeLLMClient:
    """Generation backend that streams a fixed list of tokens.

    With fail_after set, the stream raises GenerationServiceError once that
    many tokens have been yielded. closed is set when the stream is closed,
    also when the consumer stops early.
    """

    def __init__(self, tokens=None, answer="Full answer.", fail_after: int | None = None):
        self.tokens = tokens if tokens is not None else ["Hello", " ", "world"]
        self.answer = answer
        self.fail_after = fail_after
        self.prompts: list[str] = []
        self.yielded = 0
        self.closed = False

    async def do_generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer

    async def do_generate_stream(self, prompt: str):
        self.prompts.append(prompt)
        try:
            for token in self.tokens:
                if self.fail_after is not None and self.yielded >= self.fail_after:
                    raise GenerationServiceError("Generation stream failed: connection reset")
                self.yielded += 1
                yield token
        finally:
            self.closed = True


def text_pdf(*pages: str) -> bytes:
    """Minimal PDF with one line of Helvetica text per page, cross-reference table included."""
    objects = [b"<< /Type /Catalog /Pages 2 0 R >>", b"", b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>"]
    kids = []
    for text in pages:
        content = b"BT /F1 12 Tf 20 150 Td (" + text.encode("latin-1") + b") Tj ET"
        objects.append(b"<< /Length %d >>\nstream\n%s\nendstream" % (len(content), content))
        objects.append(
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 400 200] "
            b"/Resources << /Font << /F1 3 0 R >> >> /Contents %d 0 R >>" % (len(objects))
        )
        kids.append(b"%d 0 R" % len(objects))
    objects[1] = b"<< /Type /Pages /Kids [%s] /Count %d >>" % (b" ".join(kids), len(kids))

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n%s\nendobj\n" % (number, body)
    xref_at = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


class FakeTextExtractor:
    """Treats the uploaded bytes as UTF-8 text instead of parsing a PDF."""

    async def extract(self, pdf_bytes: bytes) -> str:
        if not pdf_bytes:
            raise ExtractionError("Uploaded document is empty.")
        return pdf_bytes.decode("utf-8")


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def embed_client():
    client = MagicMock()
    client.do_fetch_embedding_vector_size = AsyncMock(return_value=(VECTOR_SIZE, "Cosine"))
    client.do_embed = AsyncMock(side_effect=fake_vector)
    client.do_embed_many = AsyncMock(side_effect=lambda texts: [fake_vector(text) for text in texts])
    return client


@pytest.fixture
def llm_client():
    return FakeLLMClient()


@pytest.fixture
def text_extractor():
    return FakeTextExtractor()


@pytest.fixture
def registry(helper_config):
    return SessionRegistry(helper_config=helper_config)


@pytest.fixture
def cleanup_service(helper_config, registry, vector_store):
    return CleanupService(helper_config=helper_config, registry=registry, rag_client=vector_store)


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_text():
    """Roughly 2500 characters of prose, enough for a few default-sized chunks."""
    sentences = [
        "The quarterly report covers revenue, costs and outlook for the coming year.",
        "Revenue grew by twelve percent compared to the previous quarter.",
        "Operating costs remained stable thanks to lower energy prices.",
        "The board expects moderate growth in the second half of the year.",
    ]
    paragraphs = [" ".join(sentences) for _ in range(8)]
    return "\n\n".join(paragraphs)
