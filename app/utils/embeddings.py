"""
Embeddings utility for turning queries and summaries into vectors.
"""

import logging
import asyncio
import threading
from typing import List, Optional
from sentence_transformers import SentenceTransformer
import numpy as np

from config.llm_config import settings

logger = logging.getLogger(__name__)

class EmbeddingsManager:
    """Manages text embeddings using the specified model."""

    def __init__(self, model_name: Optional[str] = None):
        """
        Initialize the embeddings manager.

        Args:
            model_name: Name of the sentence transformer model to use
        """
        self.model_name = model_name or settings.embeddings_model
        self.model: Optional[SentenceTransformer] = None
        self._load_lock = threading.Lock()
        # Don't load model immediately - load on first use

    def _load_model(self):
        """Load the sentence transformer model."""
        with self._load_lock:
            if self.model is not None:
                return

            try:
                logger.info(f"Loading embeddings model: {self.model_name}")
                self.model = SentenceTransformer(self.model_name)
                logger.info(f"Successfully loaded model: {self.model_name}")
            except Exception as e:
                logger.error(f"Error loading embeddings model: {e}")
                raise

    def _encode(self, texts: List[str]):
        self._load_model()  # Load model if not already loaded
        return self.model.encode(texts, convert_to_tensor=False)  # type: ignore

    async def create_embeddings(self, texts: List[str]) -> List[List[float]]:
        """
        Create embeddings for a list of texts.

        Args:
            texts: List of text strings to embed

        Returns:
            List[List[float]]: List of embedding vectors, aligned with texts
        """
        try:
            if not texts:
                logger.warning("No texts provided for embedding")
                return []

            logger.info(f"Creating embeddings for {len(texts)} texts")

            # Load and encode in a thread pool to avoid blocking
            loop = asyncio.get_running_loop()
            embeddings = await loop.run_in_executor(None, lambda: self._encode(texts))

            # Convert to list of lists if needed
            if isinstance(embeddings, np.ndarray):
                embeddings = embeddings.tolist()

            logger.info(f"Successfully created {len(embeddings)} embeddings")
            return embeddings

        except Exception as e:
            logger.error(f"Error creating embeddings: {e}")
            raise

    async def create_single_embedding(self, text: str) -> List[float]:
        """Create embedding for a single text."""
        embeddings = await self.create_embeddings([text])
        return embeddings[0]
