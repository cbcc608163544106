# tests/fakes/fake_embedder.py

from __future__ import annotations

import hashlib
from typing import List

import numpy as np


class FakeEmbedder:
    """
    Deterministic bag-of-words embedder standing in for EmbeddingModel.

    Each lower-cased token adds 1.0 to a dimension picked by its md5 hash,
    so utterances sharing words get a high cosine similarity and no model
    download happens.
    """

    def __init__(self, dims: int = 64) -> None:
        self.dims = dims
        self.model_id = f"fake-embedder-{dims}"
        self.calls: List[List[str]] = []

    def embed(self, texts: List[str], batch_size: int = 32, **kwargs) -> np.ndarray:
        self.calls.append(list(texts))
        vectors = np.zeros((len(texts), self.dims), dtype=np.float32)
        for row, text in enumerate(texts):
            for token in text.lower().split():
                digest = hashlib.md5(token.encode("utf-8")).digest()
                vectors[row, int.from_bytes(digest[:4], "little") % self.dims] += 1.0
        return vectors

    @property
    def embedded_texts(self) -> List[str]:
        return [text for call in self.calls for text in call]
