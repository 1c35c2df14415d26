"""Chat service.

Builds a grounding prompt from the chunks retrieved for a question and
hands it to the generation backend, either single-shot or streamed.

Streaming is exposed as an async iterator of ChatStreamEvent items
(stream_answer / stream_chat) which the transport adapts to its own wire
format. chat() with a sink drives the same iterator and forwards each event
to the sink's callbacks.
"""

from contextlib import aclosing
from typing import AsyncIterator, Protocol

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.exceptions.errors import DocuRAGError
from shared.helper.HelperConfig import HelperConfig
from shared.models.chat import ChatContext, ChatResult, ChatStreamEvent, Source
from shared.models.document import DocumentChunk
from services.document_chat.RetrievalService import RetrievalService

NOT_FOUND_ANSWER = "This information is not found in the provided document."
STREAM_ERROR_MESSAGE = "Error processing your request"

CHAT_PROMPT_TEMPLATE = """You are a helpful AI assistant that answers questions about PDF documents. You have access to the following relevant sections of the documents:

{context}

Question: {question}

Response Guidelines:
• Answer only from the sections above, never from outside knowledge
• If the information is not in the sections above, respond: "{not_found}"
• Format your response using bullet points when listing multiple items
• Keep answers clear and professional
• Use markdown formatting for emphasis when needed"""


class ChatEventSink(Protocol):
    """Receiver of a streamed answer.

    on_chunk is called once per token, on_complete once at the natural end,
    on_error once if the answer is cut off. Raising from any callback marks
    the sink as gone and aborts the generation stream.
    """

    async def on_chunk(self, text: str, sources: list[Source]) -> None: ...

    async def on_complete(self) -> None: ...

    async def on_error(self, message: str) -> None: ...


class ChatService:
    def __init__(
        self,
        helper_config: HelperConfig,
        retrieval_service: RetrievalService,
        llm_client: LLMClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._retrieval = retrieval_service
        self._llm_client = llm_client
        self.source_preview_chars = helper_config.get_int_val("SOURCE_PREVIEW_CHARS", default=150, minimum=0)

    ##########################################
    ############# PROMPT BUILDER #############
    ##########################################

    def build_prompt(self, chunks: list[DocumentChunk], question: str) -> str:
        """Full chunk texts, blank-line separated, followed by the question."""
        context = "\n\n".join(chunk.text for chunk in chunks)
        return CHAT_PROMPT_TEMPLATE.format(context=context, question=question, not_found=NOT_FOUND_ANSWER)

    def build_sources(self, chunks: list[DocumentChunk]) -> list[Source]:
        """Citation records with the chunk text cut to source_preview_chars plus "..."."""
        sources = []
        for chunk in chunks:
            text = chunk.text
            if len(text) > self.source_preview_chars:
                text = text[: self.source_preview_chars] + "..."
            sources.append(Source(file_name=chunk.file_name, chunk_index=chunk.chunk_index, text=text))
        return sources

    async def build_context(self, session_id: str, message: str) -> ChatContext:
        """Retrieve chunks for the question and compute prompt and sources once.

        Raises:
            SessionNotFoundError: If the session id is unknown.
            NoDocumentsError: If the session has no documents.
            EmbeddingServiceError: If the question cannot be embedded.
            VectorStoreError: If the search fails.
        """
        chunks = await self._retrieval.retrieve(session_id, message)
        return ChatContext(
            session_id=session_id,
            prompt=self.build_prompt(chunks, message),
            chunks=chunks,
            sources=self.build_sources(chunks),
        )

    ##########################################
    ################ CORE ####################
    ##########################################

    async def chat(self, session_id: str, message: str, sink: ChatEventSink | None = None) -> ChatResult | None:
        """Answer a question about the documents of a session.

        Without a sink the full answer is generated single-shot and returned
        with its sources. With a sink the answer is streamed into it and None
        is returned once the stream has ended.

        Args:
            session_id (str): The session to answer in.
            message (str): The user question.
            sink (ChatEventSink | None): Receiver for a streamed answer.

        Returns:
            ChatResult | None: The answer and sources, or None in sink mode.

        Raises:
            DocuRAGError: Without a sink, any retrieval or generation failure.
        """
        if sink is not None:
            await self._chat_to_sink(session_id, message, sink)
            return None

        context = await self.build_context(session_id, message)
        response = await self._llm_client.do_generate(context.prompt)
        self.logging.info("Answered question for session %s (%d chars).", session_id, len(response))
        return ChatResult(response=response, sources=context.sources)

    async def stream_chat(self, session_id: str, message: str) -> AsyncIterator[ChatStreamEvent]:
        """Retrieve, then stream the answer. Retrieval errors are raised before the first event."""
        context = await self.build_context(session_id, message)
        async with aclosing(self.stream_answer(context)) as events:
            async for event in events:
                yield event

    async def stream_answer(self, context: ChatContext) -> AsyncIterator[ChatStreamEvent]:
        """Stream the answer for a prepared context.

        Yields one "chunk" event per token, all carrying the same sources list,
        then a single "complete" event, or a single "error" event if generation
        fails. Tokens already yielded before an error stay valid; there is no retry.
        Closing the iterator early closes the generation stream.
        """
        delivered = 0
        try:
            async with aclosing(self._llm_client.do_generate_stream(context.prompt)) as tokens:
                async for token in tokens:
                    delivered += 1
                    yield ChatStreamEvent(type="chunk", response=token, sources=context.sources)
        except DocuRAGError as exc:
            self.logging.error(
                "Stream error for session %s after %d token(s): %s", context.session_id, delivered, exc,
            )
            yield ChatStreamEvent(type="error", error=STREAM_ERROR_MESSAGE)
            return
        except Exception:
            self.logging.exception(
                "Unexpected stream failure for session %s after %d token(s).", context.session_id, delivered,
            )
            yield ChatStreamEvent(type="error", error=STREAM_ERROR_MESSAGE)
            return
        self.logging.info("Streamed %d token(s) for session %s.", delivered, context.session_id)
        yield ChatStreamEvent(type="complete")

    async def _chat_to_sink(self, session_id: str, message: str, sink: ChatEventSink) -> None:
        try:
            context = await self.build_context(session_id, message)
        except DocuRAGError as exc:
            self.logging.warning("Chat for session %s failed before generation: %s", session_id, exc)
            await self._notify_error(sink, str(exc))
            return

        async with aclosing(self.stream_answer(context)) as events:
            async for event in events:
                try:
                    if event.type == "chunk":
                        await sink.on_chunk(event.response, event.sources)
                    elif event.type == "complete":
                        await sink.on_complete()
                    else:
                        await sink.on_error(event.error)
                except Exception as exc:
                    self.logging.warning(
                        "Chat sink for session %s is unavailable (%s), aborting generation stream.", session_id, exc,
                    )
                    return

    async def _notify_error(self, sink: ChatEventSink, message: str) -> None:
        try:
            await sink.on_error(message)
        except Exception as exc:
            self.logging.warning("Chat sink rejected error notification: %s", exc)
