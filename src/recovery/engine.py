# src/recovery/engine.py — v1
"""Response recovery engine: run the repair ladder in order.

Stages run strictly in the configured order and stop at the first success.
Every stage, including skipped ones, is recorded in ``attempts``.
"""

from __future__ import annotations

import logging
import time
from typing import Sequence

from llmpipe.core.errors import RecoveryFailed
from llmpipe.logging.context import log_context
from llmpipe.recovery.models import RecoveryMethod, RecoveryResult, StageAttempt
from llmpipe.recovery.schema import SchemaHint
from llmpipe.recovery.strategies import (
    RepairStrategy,
    StrategyFailed,
    TextGenerator,
    default_strategies,
)

logger = logging.getLogger(__name__)


class ResponseRecoveryEngine:
    """Turns raw model text into parsed structured data."""

    def __init__(
        self,
        strategies: Sequence[RepairStrategy] | None = None,
        generator: TextGenerator | None = None,
    ) -> None:
        self._strategies = list(strategies) if strategies is not None else default_strategies(generator)

    @property
    def strategies(self) -> list[RepairStrategy]:
        return list(self._strategies)

    async def recover(
        self, raw_text: str, expected_schema_hint: SchemaHint = None,
    ) -> RecoveryResult:
        """Run the ladder. Never raises for parse failures.

        Returns:
            RecoveryResult; ``success`` False with method ``failed`` and the
            last parse error when every stage failed.
        """
        attempts: list[StageAttempt] = []
        last_error: str | None = None

        for strategy in self._strategies:
            if not strategy.available:
                attempts.append(StageAttempt(
                    method=strategy.method,
                    success=False,
                    skipped=True,
                    error="strategy unavailable",
                ))
                continue

            start = time.monotonic()
            with log_context(stage=strategy.name):
                try:
                    repaired = await strategy.apply(raw_text, expected_schema_hint)
                except StrategyFailed as e:
                    last_error = str(e)
                    attempts.append(_failed(strategy, last_error, start))
                    logger.debug("Recovery stage %s failed: %s", strategy.name, e)
                    continue
                except Exception as e:
                    # assisted stages surface router errors here
                    last_error = f"{type(e).__name__}: {e}"
                    attempts.append(_failed(strategy, last_error, start))
                    logger.warning("Recovery stage %s errored: %s", strategy.name, e)
                    continue

            attempts.append(StageAttempt(
                method=strategy.method,
                success=True,
                latency_ms=_elapsed_ms(start),
            ))
            if strategy.method is not RecoveryMethod.DIRECT:
                logger.info(
                    "Recovered JSON via %s (confidence %.2f)",
                    strategy.method.value, strategy.confidence,
                )
            return RecoveryResult(
                success=True,
                parsed_data=repaired.data,
                method=strategy.method,
                confidence=strategy.confidence,
                original_error=attempts[0].error if len(attempts) > 1 else None,
                attempts=attempts,
                defaulted_fields=repaired.defaulted_fields,
            )

        logger.warning(
            "JSON recovery failed after %d strategies (input length %d)",
            len(attempts), len(raw_text),
        )
        return RecoveryResult(
            success=False,
            method=RecoveryMethod.FAILED,
            confidence=0.0,
            original_error=last_error or "All recovery strategies failed",
            attempts=attempts,
        )

    async def recover_or_raise(
        self, raw_text: str, expected_schema_hint: SchemaHint = None,
    ) -> RecoveryResult:
        """Like recover(), but raises RecoveryFailed when every stage failed."""
        result = await self.recover(raw_text, expected_schema_hint)
        if not result.success:
            raise RecoveryFailed(result.attempts, result.original_error)
        return result


def _failed(strategy: RepairStrategy, error: str, start: float) -> StageAttempt:
    return StageAttempt(
        method=strategy.method,
        success=False,
        error=error,
        latency_ms=_elapsed_ms(start),
    )


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 3)
