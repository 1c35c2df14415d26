from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.exceptions.errors import EmbeddingServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default="")
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # root on ollama
        return ""

    def get_endpoint_embedding(self) -> str:
        # single-prompt endpoint, one vector per call
        return "/api/embeddings"

    def get_endpoint_model_details(self) -> str:
        # ollama uses /api/show for model details, with model name in body
        return "/api/show"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, text: str) -> dict:
        """Build the Ollama embedding request body.

        Args:
            text (str): The text to embed.

        Returns:
            dict: {"model": "...", "prompt": "..."}
        """
        return {"model": self.embed_model, "prompt": text}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_vector_size_from_model_info(self, model_info: dict) -> int:
        info: dict = model_info.get("model_info", {}) if isinstance(model_info, dict) else {}
        for key, value in info.items():
            if key.endswith(".embedding_length"):
                return int(value)
        raise EmbeddingServiceError(f"Could not determine embedding vector size for model {self.embed_model}")

    def extract_embedding_from_response(self, response_data: dict) -> list[float]:
        """Extract the embedding vector from an Ollama /api/embeddings response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[float]: The embedding vector.

        Raises:
            EmbeddingServiceError: If the response does not contain a valid embedding.
        """
        embedding = response_data.get("embedding") if isinstance(response_data, dict) else None
        if not embedding or not isinstance(embedding, list):
            keys = list(response_data.keys()) if isinstance(response_data, dict) else type(response_data).__name__
            raise EmbeddingServiceError(
                "Ollama response does not contain a valid embedding. "
                f"Response keys: {keys}"
            )
        return embedding
