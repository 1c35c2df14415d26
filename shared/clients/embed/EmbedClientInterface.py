import asyncio
from abc import abstractmethod
from typing import Tuple

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions.errors import EmbeddingServiceError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=None)
        self.embed_vector_size = helper_config.get_int_val(f"{self.get_client_type().upper()}_VECTOR_SIZE", default=0, minimum=0)
        self.embed_concurrency = helper_config.get_int_val(f"{self.get_client_type().upper()}_CONCURRENCY", default=8, minimum=1)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embeddings")
        """
        pass

    @abstractmethod
    def get_endpoint_model_details(self) -> str:
        """
        Returns the endpoint path for model details requests.

        Returns:
            str: The endpoint path for model details requests (e.g. "/api/show")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, text: str) -> dict:
        """Build the backend-specific request body for embedding a single text.

        Args:
            text (str): The text to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "prompt": "..."}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_vector_size_from_model_info(self, model_info: dict) -> int:
        """
        Extracts the embedding vector size from the model information response.

        Args:
            model_info (dict): The raw response from the model details endpoint.

        Returns:
            int: The dimension of the embedding vectors produced by the model.

        Raises:
            EmbeddingServiceError: If the vector size cannot be determined.
        """
        pass

    @abstractmethod
    def extract_embedding_from_response(self, response_data: dict) -> list[float]:
        """Extract the embedding vector from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[float]: The embedding vector.

        Raises:
            EmbeddingServiceError: If the response does not carry a valid vector.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """
        Resolve the output vector dimension and distance metric of the configured embedding model.

        Uses EMBED_VECTOR_SIZE when set, otherwise asks the backend for the model details.

        Returns:
            Tuple[int, str]: The number of dimensions produced by the embedding model and the distance metric.

        Raises:
            EmbeddingServiceError: If the backend cannot be reached or the dimension cannot be
                determined from the response.
        """
        if self.embed_vector_size > 0:
            return self.embed_vector_size, self.embed_distance

        try:
            response = await self.do_request(
                method="POST",
                json={"name": self.embed_model},
                endpoint=self.get_endpoint_model_details(),
                raise_on_error=True,
            )
        except httpx.HTTPError as exc:
            raise EmbeddingServiceError(f"Could not fetch details for model '{self.embed_model}': {exc}") from exc
        try:
            model_info = response.json()
        except ValueError as exc:
            raise EmbeddingServiceError(f"Model details for '{self.embed_model}' are not valid JSON.") from exc
        self.embed_vector_size = self.extract_vector_size_from_model_info(model_info=model_info)
        self.logging.info("Detected vector size %d for embedding model '%s'.", self.embed_vector_size, self.embed_model)
        return self.embed_vector_size, self.embed_distance

    async def do_embed(self, text: str) -> list[float]:
        """Embed a single text with one remote call.

        Args:
            text (str): The text to embed.

        Returns:
            list[float]: The embedding vector.

        Raises:
            EmbeddingServiceError: On transport failure or timeout, non-200 status,
                or a response without a valid vector.
        """
        body = self.get_embed_payload(text)
        try:
            response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        except httpx.HTTPError as exc:
            self.logging.error("Embedding request to %s failed: %s", self.get_engine_name(), exc)
            raise EmbeddingServiceError(f"Embedding request failed: {exc!r}") from exc

        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise EmbeddingServiceError("Embedding request failed with status %d." % response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise EmbeddingServiceError("Embedding response is not valid JSON.") from exc
        return self.extract_embedding_from_response(data)

    async def do_embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed many texts concurrently, one remote call per text.

        At most embed_concurrency calls are in flight. The returned vectors are
        in the same order as the input texts. If one call fails, the outstanding
        ones are cancelled and the error is re-raised.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in input order.

        Raises:
            EmbeddingServiceError: If any single embedding fails.
        """
        sem = asyncio.Semaphore(self.embed_concurrency)

        async def _embed_one(text: str) -> list[float]:
            async with sem:
                return await self.do_embed(text)

        tasks = [asyncio.ensure_future(_embed_one(text)) for text in texts]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
