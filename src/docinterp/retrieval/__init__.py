"""Offline embeddings and the LanceDB-backed vector store."""

from docinterp.retrieval.embedder import cosine_similarity, embed_text
from docinterp.retrieval.vector_store import StoreReport, VectorStore

__all__ = [
    "StoreReport",
    "VectorStore",
    "cosine_similarity",
    "embed_text",
]
