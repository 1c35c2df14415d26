from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collection(self, collection_name: str) -> str:
        return f"/collections/{collection_name}"

    def _get_endpoint_points(self, collection_name: str) -> str:
        return f"/collections/{collection_name}/points"

    def _get_endpoint_search(self, collection_name: str) -> str:
        return f"/collections/{collection_name}/points/search"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {"size": vector_size, "distance": distance}}

    def get_upsert_payload(self, points: list[VectorPoint]) -> dict:
        return {"points": [point.to_request_dict() for point in points]}

    def get_search_payload(self, query_vector: list[float], limit: int) -> dict:
        return {"vector": query_vector, "limit": limit, "with_payload": True}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_search_hits(self, raw_response: dict) -> list[dict]:
        return raw_response.get("result") or []

    def is_upsert_completed(self, raw_response: dict) -> bool:
        # with wait=true qdrant only answers once the operation is applied
        return (raw_response.get("result") or {}).get("status") == "completed"

    def is_delete_acknowledged(self, raw_response: dict) -> bool:
        # older qdrant versions answer 200 with result=false for unknown collections
        return raw_response.get("result") is True
