from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required by a client.

    Attributes:
        env_key (str): The raw key of the environment variable to read. It is prefixed with the client type and engine (e.g. "BASE_URL" -> "RAG_QDRANT_BASE_URL").
        val_type (str): The expected type of the environment variable's value. Supported types are "string", "number" and "bool".
        default (str | int | float | bool | None): An optional default value if the environment variable is not set. If None, the variable is required and an error will be raised if it is not set.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | None = None
