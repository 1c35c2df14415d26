from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.exceptions.errors import GenerationServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
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
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_generate(self) -> str:
        return "/api/generate"

    ################ PAYLOAD BUILDER ##################
    def get_generate_payload(self, prompt: str, stream: bool) -> dict:
        """Build the Ollama generate request body.

        Args:
            prompt (str): The full prompt.
            stream (bool): Whether Ollama should stream NDJSON fragments.

        Returns:
            dict: {"model": "...", "prompt": "...", "stream": bool}
        """
        return {"model": self.chat_model, "prompt": prompt, "stream": stream}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_generate_response(self, response_data: dict) -> str:
        """Extract the answer text from an Ollama /api/generate response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            str: The answer text.

        Raises:
            GenerationServiceError: If the response does not contain an answer.
        """
        content = response_data.get("response") if isinstance(response_data, dict) else None
        if not isinstance(content, str):
            raise GenerationServiceError(
                "Ollama generate response does not contain a valid answer. "
                "Response: %r" % (response_data,)
            )
        return content

    def extract_stream_token(self, fragment: dict) -> str | None:
        # ollama reports failures after the 200 header as {"error": "..."}
        if fragment.get("error"):
            raise GenerationServiceError("Ollama reported an error mid-stream: %s" % fragment["error"])
        token = fragment.get("response")
        return token if isinstance(token, str) else None
