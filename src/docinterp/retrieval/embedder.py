"""Deterministic offline text embeddings.

Each token is hashed into a few (frequency, phase) pairs; every pair
contributes a cosine wave across the output dimensions. Identical text
always produces an identical vector and nothing leaves the process.
"""

from __future__ import annotations

import hashlib
import logging
import math
import re
from collections.abc import Sequence
from functools import lru_cache

import numpy as np

from docinterp.constants import (
    EMBEDDING_DIMENSIONS,
    EMBEDDING_HARMONICS,
    EMBEDDING_POSITION_DECAY,
    EMBEDDING_STOPWORDS,
)
from docinterp.resilience.errors import EmbeddingError

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9_$]+")
_MIN_TOKEN_CHARS = 2


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens without single characters or function words."""
    return [
        t for t in _TOKEN_RE.findall(text.lower())
        if len(t) >= _MIN_TOKEN_CHARS and t not in EMBEDDING_STOPWORDS
    ]


def embed_text(
    text: str,
    dimensions: int = EMBEDDING_DIMENSIONS,
) -> list[float]:
    """Embed text into a unit vector of length ``dimensions``.

    Empty or token-less input yields the zero vector.
    """
    return embed_weighted([(text, 1.0)], dimensions)


def embed_weighted(
    parts: Sequence[tuple[str, float]],
    dimensions: int = EMBEDDING_DIMENSIONS,
) -> list[float]:
    """Embed several texts into one unit vector.

    Every token of a part is scaled by that part's weight, so a section
    heading can outweigh the body it introduces. Positions restart at
    zero for each part.
    """
    for text, _ in parts:
        if not isinstance(text, str):
            raise EmbeddingError(
                f"embedding input must be str, got {type(text).__name__}"
            )
    if dimensions < 8:
        raise EmbeddingError(f"embedding dimensions too small: {dimensions}")

    vec = np.zeros(dimensions, dtype=np.float64)
    token_count = 0
    for text, part_weight in parts:
        tokens = tokenize(text)
        token_count += len(tokens)
        for position, token in enumerate(tokens):
            weight = part_weight / (1.0 + EMBEDDING_POSITION_DECAY * position)
            vec += weight * _token_wave(token, dimensions)
    if token_count == 0:
        return [0.0] * dimensions

    norm = float(np.linalg.norm(vec))
    if norm == 0.0 or not math.isfinite(norm):
        logger.debug(
            "event=degenerate_embedding tokens=%d", token_count
        )
        return [0.0] * dimensions
    return (vec / norm).tolist()


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity clamped to [-1, 1]; 0.0 if either norm is 0."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(
            f"dimension mismatch: {va.shape[0]} vs {vb.shape[0]}"
        )
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    score = float(np.dot(va, vb) / (norm_a * norm_b))
    if not math.isfinite(score):
        return 0.0
    return max(-1.0, min(1.0, score))


@lru_cache(maxsize=8192)
def _token_wave(token: str, dimensions: int) -> np.ndarray:
    """Unit-norm wave for one token; cached because vocabularies repeat."""
    digest = hashlib.blake2b(
        token.encode("utf-8"), digest_size=4 * EMBEDDING_HARMONICS
    ).digest()
    # Integer frequencies in [1, D/2) keep distinct waves orthogonal.
    max_freq = dimensions // 2 - 1
    j = np.arange(dimensions, dtype=np.float64)
    wave = np.zeros(dimensions, dtype=np.float64)
    for h in range(EMBEDDING_HARMONICS):
        f_bits = int.from_bytes(digest[4 * h : 4 * h + 2], "big")
        p_bits = int.from_bytes(digest[4 * h + 2 : 4 * h + 4], "big")
        freq = 1 + f_bits % max_freq
        phase = 2.0 * math.pi * p_bits / 65536.0
        wave += np.cos(2.0 * math.pi * freq * j / dimensions + phase)
    norm = float(np.linalg.norm(wave))
    if norm > 0.0:
        wave /= norm
    wave.setflags(write=False)
    return wave
