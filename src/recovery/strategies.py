# src/recovery/strategies.py — v2
"""Recovery ladder strategies.

Each strategy either returns parsed data or raises StrategyFailed. The
engine decides the order; strategies know nothing about each other.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol

from llmpipe.recovery.models import RecoveryMethod
from llmpipe.recovery.repair import (
    RepairError,
    extract_json_from_response,
    structural_repair,
    syntactic_cleanup,
)
from llmpipe.recovery.schema import SchemaHint, apply_defaults, render_schema_hint
from llmpipe.router.models import InvocationOptions, InvocationResult

logger = logging.getLogger(__name__)


class StrategyFailed(Exception):
    """The strategy could not produce parseable data."""


class TextGenerator(Protocol):
    """What the assisted stages need from the router."""

    async def invoke(
        self, prompt: str, options: InvocationOptions | None = None,
    ) -> InvocationResult: ...


@dataclass
class Repaired:
    """Strategy output."""

    data: Any
    defaulted_fields: list[str] = field(default_factory=list)


class RepairStrategy(ABC):
    """One rung of the recovery ladder."""

    name: str = ""
    method: RecoveryMethod
    confidence: float

    @property
    def available(self) -> bool:
        """False when the strategy cannot run (e.g. no provider to ask)."""
        return True

    @abstractmethod
    async def apply(self, text: str, hint: SchemaHint = None) -> Repaired:
        """Return parsed data or raise StrategyFailed."""


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise StrategyFailed(f"{e.msg} at line {e.lineno} column {e.colno}") from e


class DirectParse(RepairStrategy):
    name = "direct_parse"
    method = RecoveryMethod.DIRECT
    confidence = 1.0

    async def apply(self, text: str, hint: SchemaHint = None) -> Repaired:
        return Repaired(_loads(text))


class SyntacticCleanup(RepairStrategy):
    """Code fences, surrounding prose, escapes, trailing commas."""

    name = "syntactic_cleanup"
    method = RecoveryMethod.SYNTACTIC_CLEANUP
    confidence = 0.9

    async def apply(self, text: str, hint: SchemaHint = None) -> Repaired:
        return Repaired(_loads(syntactic_cleanup(text)))


class StructuralRepair(RepairStrategy):
    """Missing commas, unterminated strings, unbalanced brackets."""

    name = "structural_repair"
    method = RecoveryMethod.STRUCTURAL_REPAIR
    confidence = 0.85

    async def apply(self, text: str, hint: SchemaHint = None) -> Repaired:
        try:
            repaired = structural_repair(text)
        except RepairError as e:
            raise StrategyFailed(str(e)) from e
        if not repaired or repaired[0] not in "{[":
            raise StrategyFailed("no JSON object or array to repair")
        return Repaired(_loads(repaired))


_REPAIR_PROMPT = """Fix this malformed JSON and return only the corrected JSON.

MALFORMED JSON:
{text}

EXPECTED SCHEMA:
{schema}

Rules:
- fix syntax errors (quotes, brackets, commas)
- complete truncated strings and objects
- keep embedded code exactly, properly escaped
- reply with the JSON only, no explanation"""

_EXTRACT_PROMPT = """Extract the structured data from this malformed response as valid JSON.

MALFORMED RESPONSE:
{text}

EXPECTED STRUCTURE:
{schema}

Rules:
- keep every value present in the response
- omit fields you cannot find instead of inventing them
- reply with the JSON only, no explanation"""


class _AssistedStrategy(RepairStrategy):
    task = ""
    prompt_template = ""

    def __init__(self, generator: TextGenerator | None = None) -> None:
        self._generator = generator

    @property
    def available(self) -> bool:
        return self._generator is not None

    async def _ask(self, text: str, hint: SchemaHint) -> Any:
        if self._generator is None:
            raise StrategyFailed("no text generator configured")
        prompt = self.prompt_template.format(text=text, schema=render_schema_hint(hint))
        result = await self._generator.invoke(
            prompt,
            InvocationOptions(
                task=self.task,
                allow_semantic_cache=False,
                temperature=0.0,
            ),
        )
        logger.debug("%s answered by %s", self.name, result.provider)
        payload = extract_json_from_response(result.text)
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            return _loads(syntactic_cleanup(payload))


class AssistedRepair(_AssistedStrategy):
    """Ask a provider to return corrected JSON."""

    name = "assisted_repair"
    method = RecoveryMethod.ASSISTED_REPAIR
    confidence = 0.8
    task = "json_repair"
    prompt_template = _REPAIR_PROMPT

    async def apply(self, text: str, hint: SchemaHint = None) -> Repaired:
        return Repaired(await self._ask(text, hint))


class AssistedExtraction(_AssistedStrategy):
    """Ask a provider to extract fields, then default the missing ones."""

    name = "assisted_extraction"
    method = RecoveryMethod.ASSISTED_EXTRACTION
    confidence = 0.7
    task = "json_extraction"
    prompt_template = _EXTRACT_PROMPT

    async def apply(self, text: str, hint: SchemaHint = None) -> Repaired:
        data = await self._ask(text, hint)
        if not isinstance(data, dict):
            raise StrategyFailed(f"extraction returned {type(data).__name__}, expected object")
        completed, defaulted = apply_defaults(data, hint)
        return Repaired(completed, defaulted)


def default_strategies(generator: TextGenerator | None = None) -> list[RepairStrategy]:
    """The five-stage ladder in order. Assisted stages are unavailable without a generator."""
    return [
        DirectParse(),
        SyntacticCleanup(),
        StructuralRepair(),
        AssistedRepair(generator),
        AssistedExtraction(generator),
    ]
