from pydantic import BaseModel

from shared.clients.rag.models.VectorPoint import VectorPayload


class SearchHit(BaseModel):
    """One nearest-neighbour result of a similarity search.

    Attributes:
        id:      Point id as stored in the vector store.
        score:   Similarity score in the collection's distance metric.
        payload: The chunk metadata stored with the point.
    """

    id: str | int
    score: float
    payload: VectorPayload
