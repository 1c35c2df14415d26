"""FastAPI application entry point for docurag."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from services.document_chat.ChatService import ChatService
from services.document_chat.CleanupService import CleanupService
from services.document_chat.IngestionService import IngestionService
from services.document_chat.RetrievalService import RetrievalService
from services.document_chat.SessionReaper import SessionReaper
from services.document_chat.SessionRegistry import SessionRegistry
from server.core.exception_handlers import register_exception_handlers
from server.routers.ChatRouter import router as chat_router
from server.routers.CleanupRouter import router as cleanup_router
from server.routers.HealthRouter import router as health_router
from server.routers.UploadRouter import router as upload_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    helper_config = HelperConfig(logger=logging)
    app.state.helper_config = helper_config

    embed_client = EmbedClientManager(helper_config=helper_config).get_client()
    llm_client = LLMClientManager(helper_config=helper_config).get_client()
    rag_client = RAGClientManager(helper_config=helper_config).get_client()
    clients: list[ClientInterface] = [embed_client, llm_client, rag_client]

    logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    logging.info("All clients booted successfully.")

    await check_connections(clients)
    vector_size, distance = await embed_client.do_fetch_embedding_vector_size()
    logging.info("Collections will be created with %d dimensions (%s).", vector_size, distance)

    registry = SessionRegistry(helper_config=helper_config)
    await registry.init()
    cleanup_service = CleanupService(helper_config=helper_config, registry=registry, rag_client=rag_client)
    retrieval_service = RetrievalService(
        helper_config=helper_config,
        registry=registry,
        embed_client=embed_client,
        rag_client=rag_client,
    )
    app.state.registry = registry
    app.state.cleanup_service = cleanup_service
    app.state.ingestion_service = IngestionService(
        helper_config=helper_config,
        registry=registry,
        embed_client=embed_client,
        rag_client=rag_client,
        cleanup_service=cleanup_service,
    )
    app.state.chat_service = ChatService(
        helper_config=helper_config,
        retrieval_service=retrieval_service,
        llm_client=llm_client,
    )

    reaper = SessionReaper(helper_config=helper_config, registry=registry, cleanup_service=cleanup_service)
    await reaper.start()

    # while the app is running...
    yield

    # when the app shuts down, drop the sessions and close all client connections
    await reaper.stop()
    if helper_config.get_bool_val("SESSION_CLEANUP_ON_SHUTDOWN", default=True):
        logging.info("Shutting down, cleaning up %d session(s)...", len(registry))
        result = await cleanup_service.cleanup_all()
        for warning in result.warnings:
            logging.warning(warning)
    await registry.shutdown()

    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="docurag",
    description=(
        "Chat with your PDF documents. "
        "Uploaded PDFs are chunked, embedded and indexed into a per-document vector collection "
        "via POST /upload; questions are answered from the retrieved chunks via POST /chat, "
        "streamed as server-sent events. POST /cleanup deletes a session and its collections."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(upload_router)
app.include_router(chat_router)
app.include_router(cleanup_router)
app.include_router(health_router)


async def check_connections(clients: list[ClientInterface]) -> None:
    """Check connectivity to all configured backends on startup.

    Every backend is required: documents cannot be ingested or answered
    without embeddings, generation and the vector store.

    Raises:
        Exception: If a backend is not reachable.
    """
    for client in clients:
        try:
            result: httpx.Response = await client.do_healthcheck()
        except httpx.HTTPError as exc:
            raise Exception(
                f"{client.get_client_type()} client '{client.__class__.__name__}' is not reachable: {exc}"
            ) from exc
        if not result.is_success:
            raise Exception(
                f"{client.get_client_type()} client '{client.__class__.__name__}' is not reachable "
                f"(status {result.status_code})."
            )
        logging.info("%s backend '%s' is reachable.", client.get_client_type(), client.get_engine_name())


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "3000"))
    logging.info(
        "Starting docurag API Server v%s from root dir: %s on port %d...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
        port,
    )
    uvicorn.run(app, host="0.0.0.0", port=port)
