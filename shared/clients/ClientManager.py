from typing import Generic, TypeVar

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig

ClientT = TypeVar("ClientT", bound=ClientInterface)


class ClientManager(Generic[ClientT]):
    """
    Instantiates the backend client of one family (embed, llm, rag) for the engine named in {TYPE}_ENGINE.

    The client class is resolved by convention:
    shared.clients.{type}.{engine}.{Prefix}Client{Engine}, e.g. shared.clients.rag.qdrant.RAGClientQdrant.
    """

    client_type: str = ""
    class_prefix: str = ""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client: ClientT = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine name from ENV configuration.

        Returns:
            str: The capitalised engine name (e.g. "Ollama").

        Raises:
            ValueError: If {TYPE}_ENGINE is not set.
        """
        env_key = f"{self.client_type.upper()}_ENGINE"
        engine = self.helper_config.get_string_val(env_key)
        if not engine:
            raise ValueError(f"No {self.class_prefix} engine specified in configuration ({env_key}).")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientT:
        """
        Imports and instantiates the client class for the configured engine.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"{self.class_prefix}Client{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self.class_prefix} engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", self.class_prefix, engine)
        return client

    def get_client(self) -> ClientT:
        return self.client
