# src/cache/fingerprint.py — v3
"""Prompt fingerprints for cache lookup.

- exact key: SHA-256 of the normalized prompt (trimmed, case-folded,
  whitespace collapsed)
- near-duplicate: 64-bit SimHash over word 3-shingles of the prompt with
  punctuation stripped, compared by Hamming distance
"""

from __future__ import annotations

import hashlib
import re

SIMHASH_BITS = 64


def normalize_prompt(text: str) -> str:
    """Trim, case-fold and collapse whitespace."""
    return re.sub(r"\s+", " ", text.strip().casefold())


def prompt_key(text: str) -> str:
    """Exact-match cache key for a prompt."""
    return hashlib.sha256(normalize_prompt(text).encode("utf-8")).hexdigest()


def prompt_simhash(text: str, n: int = 3) -> str:
    """SimHash of the prompt's word n-grams, as a 16-char hex string."""
    normalized = _strip_punctuation(normalize_prompt(text))
    if not normalized:
        return "0" * 16

    vector = [0] * SIMHASH_BITS
    for shingle in _make_shingles(normalized, n):
        h = int(hashlib.md5(shingle.encode("utf-8")).hexdigest(), 16)  # noqa: S324
        for i in range(SIMHASH_BITS):
            if h & (1 << i):
                vector[i] += 1
            else:
                vector[i] -= 1

    fingerprint = 0
    for i in range(SIMHASH_BITS):
        if vector[i] >= 0:
            fingerprint |= 1 << i

    return f"{fingerprint:016x}"


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """Hamming distance between two SimHash hex strings."""
    if not hash_a and not hash_b:
        return 0
    if not hash_a or not hash_b:
        return SIMHASH_BITS
    try:
        a = int(hash_a, 16)
        b = int(hash_b, 16)
    except ValueError:
        return SIMHASH_BITS
    return bin(a ^ b).count("1")


def simhash_similarity(hash_a: str, hash_b: str) -> float:
    """1 - distance/64, in [0, 1]."""
    return 1.0 - hamming_distance(hash_a, hash_b) / SIMHASH_BITS


def _strip_punctuation(text: str) -> str:
    text = re.sub(r"[^\w\s]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def _make_shingles(text: str, n: int) -> list[str]:
    """Word n-grams; short texts form a single shingle."""
    words = text.split()
    if len(words) < n:
        return [text]
    return [" ".join(words[i : i + n]) for i in range(len(words) - n + 1)]
