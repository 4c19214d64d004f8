# src/similarity/domains.py — v1
"""Vocabulary for entity similarity: stop words and domain keyword groups.

Domain membership is a substring test on the lowercased text, so "mail"
also marks "email" and "gmail".
"""

from __future__ import annotations

STOP_WORDS: frozenset[str] = frozenset({
    "and", "or", "the", "a", "an", "for", "to", "of", "in", "on", "at", "by",
    "with", "from", "up", "about", "into", "through", "during", "before",
    "after", "above", "below", "between", "among",
    # too generic in this corpus
    "system", "agent", "automation", "automatic", "auto",
})

DOMAIN_TERMS: dict[str, tuple[str, ...]] = {
    "music": ("spotify", "music", "playlist", "song", "audio", "player", "track"),
    "weather": ("weather", "temperature", "forecast", "climate", "rain", "snow", "wind"),
    "email": ("email", "mail", "message", "inbox", "send", "receive", "smtp", "imap"),
    "file": ("file", "folder", "document", "backup", "storage", "directory", "path"),
    "communication": ("telegram", "chat", "message", "notification", "call", "voice"),
    "system": ("startup", "launch", "boot", "service", "process", "daemon"),
    "scheduling": ("schedule", "calendar", "reminder", "alarm", "timer", "cron", "agenda"),
}


def domains_of(text: str, domains: dict[str, tuple[str, ...]] = DOMAIN_TERMS) -> set[str]:
    """Domains with at least one term occurring in the lowercased text."""
    lower = text.lower()
    return {name for name, terms in domains.items() if any(t in lower for t in terms)}
