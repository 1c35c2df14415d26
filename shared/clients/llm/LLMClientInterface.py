import json
from abc import abstractmethod
from typing import AsyncIterator

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions.errors import GenerationServiceError
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # generation config, falls back to the embedding model like the single-model deployments do
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default="") \
            or helper_config.get_string_val("EMBED_MODEL", default=None)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    def _get_default_timeout(self) -> float:
        # generation is slow compared to embedding and vector search
        return 120.0

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_generate(self) -> str:
        """Returns the endpoint path for prompt completion requests (e.g. "/api/generate")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_generate_payload(self, prompt: str, stream: bool) -> dict:
        """Build the backend-specific request body for a completion request.

        Args:
            prompt (str): The full prompt.
            stream (bool): Whether the backend should stream the answer.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_generate_response(self, response_data: dict) -> str:
        """Extract the answer text from a single-shot completion response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            str: The answer text.

        Raises:
            GenerationServiceError: If the response does not contain an answer.
        """
        pass

    @abstractmethod
    def extract_stream_token(self, fragment: dict) -> str | None:
        """Extract the incremental token from one parsed stream fragment.

        Args:
            fragment (dict): One parsed line of the streamed response.

        Returns:
            str | None: The token, or None if the fragment carries none.

        Raises:
            GenerationServiceError: If the fragment reports a backend error.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_generate(self, prompt: str) -> str:
        """Send a single-shot completion request and return the full answer.

        Args:
            prompt (str): The full prompt.

        Returns:
            str: The answer text.

        Raises:
            GenerationServiceError: On transport failure or timeout, non-200 status,
                or a response without an answer.
        """
        body = self.get_generate_payload(prompt, stream=False)
        try:
            response = await self.do_request(method="POST", endpoint=self._get_endpoint_generate(), json=body)
        except httpx.HTTPError as exc:
            self.logging.error("Generation request to %s failed: %s", self.get_engine_name(), exc)
            raise GenerationServiceError(f"Generation request failed: {exc!r}") from exc

        if response.status_code != 200:
            self.logging.error(
                "Generation request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise GenerationServiceError("Generation request failed with status %d." % response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise GenerationServiceError("Generation response is not valid JSON.") from exc
        return self.extract_generate_response(data)

    async def do_generate_stream(self, prompt: str) -> AsyncIterator[str]:
        """Send a streaming completion request and yield tokens as they arrive.

        The response body is newline-delimited JSON. Each line is parsed on its
        own; lines that are not valid JSON objects are logged, counted and skipped.
        The end of the body is the end of the answer.

        Closing the iterator early (aclose()) closes the HTTP stream.

        Args:
            prompt (str): The full prompt.

        Yields:
            str: Incremental answer tokens.

        Raises:
            GenerationServiceError: On transport failure or timeout, non-200 status,
                or an error fragment sent by the backend.
        """
        body = self.get_generate_payload(prompt, stream=True)
        skipped = 0
        try:
            async with self.do_stream_request(method="POST", endpoint=self._get_endpoint_generate(), json=body) as response:
                if response.status_code != 200:
                    await response.aread()
                    self.logging.error(
                        "Streaming generation request failed: status %d, body: %s",
                        response.status_code,
                        response.text[:200],
                    )
                    raise GenerationServiceError("Generation request failed with status %d." % response.status_code)

                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        fragment = json.loads(line)
                    except ValueError:
                        fragment = None
                    if not isinstance(fragment, dict):
                        skipped += 1
                        self.logging.warning("Skipping malformed generation fragment: %r", line[:100])
                        continue
                    token = self.extract_stream_token(fragment)
                    if token:
                        yield token
        except httpx.HTTPError as exc:
            self.logging.error("Generation stream from %s broke off: %s", self.get_engine_name(), exc)
            raise GenerationServiceError(f"Generation stream failed: {exc!r}") from exc
        finally:
            if skipped:
                self.logging.warning("Skipped %d malformed generation fragment(s) in one stream.", skipped)
