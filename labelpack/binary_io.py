"""
Binary I/O utilities for snapshot embeddings.
Handles packing embedding vectors into compact text-safe rows.
"""
from __future__ import annotations

import base64

import numpy as np

# Snapshot precision names -> numpy dtypes
EMBEDDING_DTYPES = {
    "float16": np.float16,
    "float32": np.float32,
}


def encode_embedding(vector: np.ndarray, dtype: str = "float16") -> str:
    """
    Pack one embedding vector as base64 of its little-endian raw bytes.

    Args:
        vector: 1D array of embedding values
        dtype: "float16" (compact) or "float32" (full)

    Raises:
        ValueError: If the vector is not 1D or the dtype is unknown
    """
    if dtype not in EMBEDDING_DTYPES:
        raise ValueError(f"Unknown embedding dtype: {dtype}")

    vector = np.asarray(vector)
    if vector.ndim != 1:
        raise ValueError(f"Expected 1D array, got {vector.ndim}D")

    packed = np.ascontiguousarray(vector, dtype=np.dtype(EMBEDDING_DTYPES[dtype]).newbyteorder("<"))
    return base64.b64encode(packed.tobytes()).decode("ascii")


def decode_embedding(encoded: str, dtype: str = "float16", n_dims: int = -1) -> np.ndarray:
    """
    Unpack a vector written by encode_embedding().

    Returns:
        NumPy array with float32 dtype

    Raises:
        ValueError: If the payload size doesn't match ``n_dims``
    """
    if dtype not in EMBEDDING_DTYPES:
        raise ValueError(f"Unknown embedding dtype: {dtype}")

    raw = base64.b64decode(encoded.encode("ascii"), validate=True)
    vector = np.frombuffer(raw, dtype=np.dtype(EMBEDDING_DTYPES[dtype]).newbyteorder("<"))

    if n_dims > 0 and len(vector) != n_dims:
        raise ValueError(f"Expected {n_dims} dimensions, but payload contains {len(vector)}")

    return vector.astype(np.float32)


def normalize_rows(matrix: np.ndarray) -> np.ndarray:
    """L2-normalize each row; zero rows stay zero."""
    matrix = np.asarray(matrix, dtype=np.float32)
    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms


def tensor_to_numpy(tensor) -> np.ndarray:
    """
    Convert a PyTorch tensor to NumPy array, handling device transfer.

    Args:
        tensor: PyTorch tensor (can be on CPU or CUDA), or anything array-like

    Returns:
        NumPy array with float32 dtype
    """
    if isinstance(tensor, np.ndarray):
        return tensor.astype(np.float32)

    # Import torch only when needed
    import torch

    if isinstance(tensor, torch.Tensor):
        # Move to CPU if on GPU, then convert
        return tensor.detach().cpu().numpy().astype(np.float32)

    return np.array(tensor, dtype=np.float32)
