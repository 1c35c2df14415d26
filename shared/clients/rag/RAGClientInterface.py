from abc import abstractmethod
from typing import NoReturn

import httpx
from pydantic import ValidationError

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.exceptions.errors import CollectionNotFoundError, VectorStoreError
from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        # vector sizes of the collections created through this client, by name
        self._collection_vector_sizes: dict[str, int] = {}

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collection(self, collection_name: str) -> str:
        """
        Returns the endpoint path for creating and deleting a collection.

        Args:
            collection_name (str): The collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col")
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self, collection_name: str) -> str:
        """
        Returns the endpoint path for points upsert requests.

        Args:
            collection_name (str): The collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points")
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self, collection_name: str) -> str:
        """
        Returns the endpoint path for nearest-neighbour search requests.

        Args:
            collection_name (str): The collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/search")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        """
        Builds the backend-specific request payload for creating a collection.

        Args:
            vector_size (int): Dimension of every vector in the collection.
            distance (str): The distance metric (e.g. "Cosine").

        Returns:
            dict: The payload for the create request.
        """
        pass

    @abstractmethod
    def get_upsert_payload(self, points: list[VectorPoint]) -> dict:
        """
        Builds the backend-specific request payload for an upsert.

        Args:
            points (list[VectorPoint]): The points to upsert.

        Returns:
            dict: The payload for the upsert request.
        """
        pass

    @abstractmethod
    def get_search_payload(self, query_vector: list[float], limit: int) -> dict:
        """
        Builds the backend-specific request payload for a nearest-neighbour search.

        Args:
            query_vector (list[float]): The query embedding.
            limit (int): The maximum number of hits.

        Returns:
            dict: The payload for the search request.
        """
        pass

    ########### RESPONSE PARSER ##############
    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[dict]:
        """
        Extracts the raw hit dicts (id, score, payload) from a search response, best match first.
        """
        pass

    @abstractmethod
    def is_upsert_completed(self, raw_response: dict) -> bool:
        """
        Returns True if the backend confirms that every point of the upsert was applied.
        """
        pass

    @abstractmethod
    def is_delete_acknowledged(self, raw_response: dict) -> bool:
        """
        Returns True if the backend confirms that the collection was deleted.
        False means the collection did not exist.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    def _raise_for_response(self, action: str, collection_name: str, response: httpx.Response) -> NoReturn:
        """Log a failed response and raise the matching VectorStoreError."""
        if response.status_code == 404:
            raise CollectionNotFoundError(collection_name)
        self.logging.error(
            "%s on collection '%s' failed with status %d: %s",
            action, collection_name, response.status_code, response.text[:200],
        )
        raise VectorStoreError(
            f"{action} on collection '{collection_name}' failed with status {response.status_code}."
        )

    async def _send(self, action: str, collection_name: str, method: str, endpoint: str, json: dict | None = None, params: dict | None = None) -> httpx.Response:
        """Send a request and translate transport failures and non-2xx statuses into VectorStoreError."""
        try:
            response = await self.do_request(method=method, endpoint=endpoint, json=json, params=params)
        except httpx.HTTPError as exc:
            self.logging.error("%s on collection '%s' failed: %s", action, collection_name, exc)
            raise VectorStoreError(f"{action} on collection '{collection_name}' failed: {exc!r}") from exc
        if not response.is_success:
            self._raise_for_response(action, collection_name, response)
        return response

    def _parse_json(self, action: str, collection_name: str, response: httpx.Response) -> dict:
        """Decode a successful response body; anything but a JSON object is a VectorStoreError."""
        try:
            data = response.json()
        except ValueError as exc:
            self.logging.error("%s on collection '%s' returned a non-JSON body: %s", action, collection_name, response.text[:200])
            raise VectorStoreError(f"{action} on collection '{collection_name}' returned a non-JSON body.") from exc
        if not isinstance(data, dict):
            raise VectorStoreError(f"{action} on collection '{collection_name}' returned an unexpected body.")
        return data

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_create_collection(self, collection_name: str, vector_size: int, distance: str = "Cosine") -> None:
        """Create a collection in the rag backend.

        Not idempotent: creating an existing collection fails.

        Args:
            collection_name (str): The collection name.
            vector_size (int): The size of the vectors in the collection.
            distance (str): The distance metric for the vectors.

        Raises:
            VectorStoreError: If the backend rejects the request or cannot be reached.
        """
        await self._send(
            "Create collection", collection_name, "PUT",
            endpoint=self._get_endpoint_collection(collection_name),
            json=self.get_create_collection_payload(vector_size, distance),
        )
        self._collection_vector_sizes[collection_name] = vector_size
        self.logging.info("Collection '%s' created (size=%d, distance=%s).", collection_name, vector_size, distance)

    async def do_delete_collection(self, collection_name: str) -> None:
        """Delete a collection from the rag backend.

        Args:
            collection_name (str): The collection name.

        Raises:
            CollectionNotFoundError: If the collection does not exist.
            VectorStoreError: If the backend rejects the request or cannot be reached.
        """
        self._collection_vector_sizes.pop(collection_name, None)
        response = await self._send(
            "Delete collection", collection_name, "DELETE",
            endpoint=self._get_endpoint_collection(collection_name),
        )
        if not self.is_delete_acknowledged(self._parse_json("Delete collection", collection_name, response)):
            raise CollectionNotFoundError(collection_name)
        self.logging.info("Collection '%s' deleted.", collection_name)

    async def do_upsert_points(self, collection_name: str, points: list[VectorPoint]) -> None:
        """Upsert points into a collection in one call.
        Inserts new points or replaces existing ones if a point with the same ID already exists.

        Args:
            collection_name (str): The collection name.
            points (list[VectorPoint]): The points to upsert.

        Raises:
            VectorStoreError: If a vector does not match the collection's vector size,
                or if the backend rejects or only partially applies the upsert.
        """
        expected_size = self._collection_vector_sizes.get(collection_name)
        if expected_size is not None:
            for point in points:
                if len(point.vector) != expected_size:
                    raise VectorStoreError(
                        f"Point '{point.id}' has vector size {len(point.vector)}, "
                        f"collection '{collection_name}' expects {expected_size}."
                    )

        response = await self._send(
            "Upsert", collection_name, "PUT",
            endpoint=self._get_endpoint_points(collection_name),
            json=self.get_upsert_payload(points),
            params={"wait": "true"},
        )
        if not self.is_upsert_completed(self._parse_json("Upsert", collection_name, response)):
            self.logging.error("Upsert of %d points into '%s' was not completed: %s", len(points), collection_name, response.text[:200])
            raise VectorStoreError(f"Upsert into collection '{collection_name}' was not completed.")
        self.logging.debug("Upserted %d points into '%s'.", len(points), collection_name)

    async def do_search(self, collection_name: str, query_vector: list[float], limit: int) -> list[SearchHit]:
        """Nearest-neighbour search in one collection.

        Args:
            collection_name (str): The collection name.
            query_vector (list[float]): The query embedding.
            limit (int): The maximum number of hits.

        Returns:
            list[SearchHit]: Up to limit hits in the backend's ranking order, best match first.

        Raises:
            CollectionNotFoundError: If the collection does not exist.
            VectorStoreError: If the search fails or returns malformed hits.
        """
        response = await self._send(
            "Search", collection_name, "POST",
            endpoint=self._get_endpoint_search(collection_name),
            json=self.get_search_payload(query_vector, limit),
        )
        raw_hits = self.extract_search_hits(self._parse_json("Search", collection_name, response))
        try:
            return [SearchHit.model_validate(hit) for hit in raw_hits]
        except (ValidationError, ValueError) as exc:
            raise VectorStoreError(f"Search on collection '{collection_name}' returned malformed hits.") from exc
