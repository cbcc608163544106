"""
Sentence embedding model used by label resolvers.

Models are fetched once into a local cache with huggingface_hub and run
through sentence-transformers; the snapshot manifest records ``model_id``
so rebuilds can tell whether cached embeddings are still usable.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

import torch
from huggingface_hub import snapshot_download
from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)

MODEL_PRESETS = {
    "fast": "sentence-transformers/all-MiniLM-L6-v2",
    "balanced": "sentence-transformers/all-mpnet-base-v2",
    "quality": "BAAI/bge-large-en-v1.5",
    "multilingual": "sentence-transformers/paraphrase-multilingual-mpnet-base-v2",
}

DEFAULT_CACHE_DIR = "./models/embeddings"


def resolve_model_id(model_id: Optional[str] = None) -> str:
    """
    HuggingFace id for a build.

    LABELPACK_EMBEDDING_PRESET wins over ``model_id``, which wins over
    LABELPACK_EMBEDDING_MODEL; preset names expand to their ids.
    """
    preset = os.getenv("LABELPACK_EMBEDDING_PRESET")
    if preset in MODEL_PRESETS:
        return MODEL_PRESETS[preset]

    requested = model_id or os.getenv("LABELPACK_EMBEDDING_MODEL") or "fast"
    return MODEL_PRESETS.get(requested, requested)


class EmbeddingModel:
    """
    Lazily loaded sentence embedding model.

    Cache directory, device and token come from LABELPACK_EMBEDDING_CACHE_DIR,
    LABELPACK_EMBEDDING_DEVICE ("auto" picks cuda when available) and HF_TOKEN
    unless passed in.
    """

    def __init__(
        self,
        model_id: Optional[str] = None,
        cache_dir: Optional[str] = None,
        device: Optional[str] = None,
        token: Optional[str] = None,
    ):
        self.model_id = resolve_model_id(model_id)
        self.cache_dir = Path(cache_dir or os.getenv("LABELPACK_EMBEDDING_CACHE_DIR", DEFAULT_CACHE_DIR))
        self.device = device or os.getenv("LABELPACK_EMBEDDING_DEVICE", "auto")
        self.token = token or os.getenv("HF_TOKEN")
        self.model: Optional[SentenceTransformer] = None

    def download_model(self) -> Path:
        """Fetch the model into the cache, returning its local directory."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        model_path = snapshot_download(
            repo_id=self.model_id,
            cache_dir=str(self.cache_dir),
            token=self.token,
        )
        logger.info(f"Model {self.model_id} available at {model_path}")
        return Path(model_path)

    def load_model(self) -> SentenceTransformer:
        if self.model is None:
            device = self.device
            if device == "auto":
                device = "cuda" if torch.cuda.is_available() else "cpu"
            self.model = SentenceTransformer(str(self.download_model()), device=device)
            logger.info(
                f"Loaded {self.model_id} on {device} "
                f"({self.model.get_sentence_embedding_dimension()} dims)"
            )
        return self.model

    def embed(self, texts: List[str], batch_size: int = 32, **kwargs) -> torch.Tensor:
        """Embeddings with shape (len(texts), dims)."""
        logger.debug(f"Embedding {len(texts)} texts with {self.model_id}")
        return self.load_model().encode(
            texts,
            batch_size=batch_size,
            convert_to_tensor=True,
            show_progress_bar=False,
            **kwargs,
        )
