"""
Embeddings module - embedding providers, text chunking and the vector index.
"""

from embeddings.embedding_model import EmbeddingProvider, OnnxEmbeddingModel
from embeddings.text_splitter import TextChunker, entity_to_text
from embeddings.vector_store import VectorIndex

__all__ = [
    "EmbeddingProvider",
    "OnnxEmbeddingModel",
    "TextChunker",
    "entity_to_text",
    "VectorIndex",
]
