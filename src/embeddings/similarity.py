# src/embeddings/similarity.py — v3
"""Cosine similarity helpers over embedding vectors (numpy)."""

from __future__ import annotations

from typing import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either is empty or zero."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.size == 0 or vb.size == 0 or va.shape != vb.shape:
        return 0.0
    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom < 1e-10:
        return 0.0
    return float(np.dot(va, vb) / denom)


def best_cosine_match(
    query: Sequence[float], candidates: Sequence[Sequence[float]],
) -> tuple[int, float] | None:
    """Index and score of the most similar candidate, or None if none comparable.

    Candidates with a different dimension than the query are ignored.
    """
    q = np.asarray(query, dtype=np.float64)
    if q.size == 0:
        return None
    rows = [i for i, c in enumerate(candidates) if len(c) == q.size]
    if not rows:
        return None

    matrix = np.asarray([candidates[i] for i in rows], dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    norms = np.maximum(norms, 1e-10)
    scores = (matrix @ q) / norms
    best = int(np.argmax(scores))
    return rows[best], float(scores[best])
