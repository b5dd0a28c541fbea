"""
Embedding providers.

EmbeddingProvider is the interface the vector index depends on.
OnnxEmbeddingModel runs a local all-MiniLM ONNX export with a HuggingFace
``tokenizers`` tokenizer and mean pooling.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import onnxruntime as ort
from loguru import logger
from tokenizers import Tokenizer

from models.exceptions import ProviderUnavailable, StoreErrorType, ValidationError
from utils.error_utils import raiseError, require_text


class EmbeddingProvider(ABC):
    """Turns text (and optionally raw bytes) into fixed-length float32 vectors.

    Implementations raise ProviderUnavailable for recoverable failures and
    never return a zero vector.
    """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector this provider returns."""

    @abstractmethod
    async def embed(self, text: str) -> np.ndarray:
        """Embed a document chunk."""

    async def embed_query(self, text: str) -> np.ndarray:
        """Embed a search query. Same space as ``embed``."""
        return await self.embed(text)

    async def embed_many(self, texts: Sequence[str]) -> List[np.ndarray]:
        return [await self.embed(text) for text in texts]

    @property
    def supports_images(self) -> bool:
        return False

    async def embed_image(self, data: bytes) -> np.ndarray:
        raiseError(
            StoreErrorType.PROVIDER_UNAVAILABLE,
            f"{type(self).__name__} cannot embed images",
            ProviderUnavailable,
        )


class OnnxEmbeddingModel(EmbeddingProvider):
    """Handles embedding model loading and inference."""

    def __init__(
        self,
        model_path: Optional[str] = None,
        max_length: Optional[int] = None,
        dimension: Optional[int] = None,
    ):
        if model_path is None or max_length is None or dimension is None:
            from config import config

            model_path = model_path or config.embedding.model_path
            max_length = max_length or config.embedding.tokenizer_max_length
            dimension = dimension or config.embedding.dimension

        self.model_path = Path(model_path).expanduser()
        self.max_length = max_length
        self._dimension = dimension
        self.session: Optional[ort.InferenceSession] = None
        self.tokenizer: Optional[Tokenizer] = None
        self.input_names: List[str] = []
        self._load_lock = threading.Lock()

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def is_loaded(self) -> bool:
        return self.session is not None

    def _load_model(self) -> None:
        """Load the ONNX model and tokenizer on first use."""
        with self._load_lock:
            if self.session is not None:
                return

            model_file = self.model_path / "model.onnx"
            tokenizer_file = self.model_path / "tokenizer.json"
            for required in (model_file, tokenizer_file):
                if not required.exists():
                    raiseError(
                        StoreErrorType.PROVIDER_UNAVAILABLE,
                        f"Embedding model file not found: {required}. "
                        "Download the all-MiniLM ONNX export into the model_path",
                        ProviderUnavailable,
                    )

            try:
                tokenizer = Tokenizer.from_file(str(tokenizer_file))
                tokenizer.enable_truncation(max_length=self.max_length)
                tokenizer.enable_padding(length=self.max_length)

                session = ort.InferenceSession(
                    str(model_file), providers=["CPUExecutionProvider"]
                )
            except Exception as e:
                logger.error(f"Failed to load embedding model: {e}")
                raise ProviderUnavailable(
                    f"Failed to load embedding model from {self.model_path}: {e}", e
                ) from e

            self.tokenizer = tokenizer
            self.input_names = [inp.name for inp in session.get_inputs()]
            self.session = session
            logger.debug(f"Loaded embedding model from {self.model_path}")

    def _tokenize(self, texts: Sequence[str]) -> Dict[str, np.ndarray]:
        """Tokenize a batch of texts into padded model inputs."""
        if self.tokenizer is None:
            raiseError(
                StoreErrorType.PROVIDER_UNAVAILABLE,
                "Tokenizer is not loaded",
                ProviderUnavailable,
            )
        encodings = self.tokenizer.encode_batch(list(texts))

        inputs = {
            "input_ids": np.array([e.ids for e in encodings], dtype=np.int64),
            "attention_mask": np.array(
                [e.attention_mask for e in encodings], dtype=np.int64
            ),
            # All zeros for single sentences
            "token_type_ids": np.array(
                [e.type_ids for e in encodings], dtype=np.int64
            ),
        }
        # Some exports do not take token_type_ids
        return {name: value for name, value in inputs.items() if name in self.input_names}

    def embed_batch_sync(self, texts: Sequence[str]) -> List[np.ndarray]:
        """Blocking batch inference; runs in a worker thread."""
        self._load_model()
        if self.session is None:
            raiseError(
                StoreErrorType.PROVIDER_UNAVAILABLE,
                f"Embedding model at {self.model_path} is not loaded",
                ProviderUnavailable,
            )

        try:
            inputs = self._tokenize(texts)
            outputs = self.session.run(None, inputs)
            embeddings = np.array(outputs[0], dtype=np.float32)

            # Mean pooling
            attention_mask = inputs["attention_mask"].astype(np.float32)
            masked_embeddings = embeddings * np.expand_dims(attention_mask, -1)
            summed = np.sum(masked_embeddings, axis=1)
            counts = np.sum(attention_mask, axis=1, keepdims=True)
            counts = np.maximum(counts, 1e-8)
            mean_pooled = summed / counts
        except Exception as e:
            logger.error(f"Failed to generate embeddings: {e}")
            raise ProviderUnavailable(f"Embedding inference failed: {e}", e) from e

        vectors = [np.asarray(row, dtype=np.float32) for row in mean_pooled]
        for vector in vectors:
            if vector.shape != (self._dimension,):
                raiseError(
                    StoreErrorType.DIMENSION_MISMATCH,
                    f"Model returned {vector.shape[0]}-dimensional vectors, "
                    f"expected {self._dimension}",
                    ProviderUnavailable,
                )
            if not np.any(vector):
                raiseError(
                    StoreErrorType.PROVIDER_UNAVAILABLE,
                    "Model returned a zero vector",
                    ProviderUnavailable,
                )
        return vectors

    async def embed(self, text: str) -> np.ndarray:
        require_text(text, "text", ValidationError)
        vectors = await asyncio.to_thread(self.embed_batch_sync, [text])
        return vectors[0]

    async def embed_many(self, texts: Sequence[str]) -> List[np.ndarray]:
        if not texts:
            return []
        for text in texts:
            require_text(text, "text", ValidationError)
        logger.debug(f"Generating batch embeddings for {len(texts)} chunks")
        return await asyncio.to_thread(self.embed_batch_sync, list(texts))
