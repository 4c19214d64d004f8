# src/main.py — v3
"""CLI entry point — invoke, recover, match, purge commands.

Usage:
    llmpipe invoke <prompt> [--json] [--skip-cache] [--task TASK]
    llmpipe recover <file|-> [--schema FILE]
    llmpipe match <query> --corpus <file> [--name NAME] [--threshold T]
    llmpipe purge

Results are printed to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from llmpipe.core.errors import AllProvidersFailed
from llmpipe.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = _load_settings(args)
        _setup_logging(settings, args.verbose)
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except AllProvidersFailed as exc:
        _emit(exc.to_dict())
        logger.error("%s", exc)
        return 1
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="llmpipe",
        description=f"llmpipe v{__version__} — resilient LLM invocation pipeline",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--env-file", type=Path, default=None,
        help="Settings file (default: ./.env)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- invoke ---
    p_invoke = subparsers.add_parser("invoke", help="Send a prompt through the provider chain")
    p_invoke.add_argument("prompt", help="Prompt text ('-' reads stdin)")
    p_invoke.add_argument("--json", dest="expect_json", action="store_true",
                          help="Recover structured JSON from the reply")
    p_invoke.add_argument("--skip-cache", action="store_true", help="Bypass cache lookup")
    p_invoke.add_argument("--task", default=None,
                          help="Task type (e.g. generate_agent); some skip the semantic cache")
    p_invoke.add_argument("--provider", default=None, help="Try this provider first")
    p_invoke.set_defaults(func=_cmd_invoke)

    # --- recover ---
    p_recover = subparsers.add_parser("recover", help="Repair malformed JSON")
    p_recover.add_argument("file", help="File with raw model output ('-' reads stdin)")
    p_recover.add_argument("--schema", type=Path, default=None,
                           help="JSON schema file used as hint for assisted stages")
    p_recover.add_argument("--offline", action="store_true",
                           help="Local stages only; never call a provider")
    p_recover.set_defaults(func=_cmd_recover)

    # --- match ---
    p_match = subparsers.add_parser("match", help="Find a near-duplicate in a corpus")
    p_match.add_argument("query", help="Description of the requested entity")
    p_match.add_argument("--corpus", type=Path, required=True,
                         help="JSON list of {id, description, name?}")
    p_match.add_argument("--name", default=None, help="Name of the requested entity")
    p_match.add_argument("--threshold", type=float, default=None,
                         help="Acceptance threshold (default: SIMILARITY_THRESHOLD)")
    p_match.add_argument("--top", type=int, default=0,
                         help="Also print the N best scores")
    p_match.set_defaults(func=_cmd_match)

    # --- purge ---
    p_purge = subparsers.add_parser("purge", help="Remove expired entries from the cache backend")
    p_purge.set_defaults(func=_cmd_purge)

    return parser


async def _cmd_invoke(args: argparse.Namespace, settings: Any) -> int:
    """Run one prompt through the orchestrator."""
    from llmpipe.pipeline.orchestrator import build_orchestrator
    from llmpipe.router.models import InvocationOptions

    orchestrator = build_orchestrator(settings)
    options = InvocationOptions(
        skip_cache=args.skip_cache,
        task=args.task,
        provider=args.provider,
        expect_json=args.expect_json,
    )
    result = await orchestrator.invoke(_read_text(args.prompt), options)
    _emit(result.model_dump(mode="json"))
    if result.recovery is not None and not result.recovery.success:
        return 1
    return 0


async def _cmd_recover(args: argparse.Namespace, settings: Any) -> int:
    """Run the recovery ladder on a file."""
    from llmpipe.recovery.engine import ResponseRecoveryEngine

    hint = None
    if args.schema is not None:
        hint = json.loads(args.schema.read_text(encoding="utf-8"))

    generator = None
    if not args.offline and settings.recovery_assisted_enabled:
        from llmpipe.pipeline.orchestrator import build_orchestrator

        generator = build_orchestrator(settings).router

    engine = ResponseRecoveryEngine(generator=generator)
    if args.file != "-" and not Path(args.file).is_file():
        logger.error("File not found: %s", args.file)
        return 1
    result = await engine.recover(_read_text(args.file), hint)
    _emit(result.model_dump(mode="json"))
    return 0 if result.success else 1


async def _cmd_match(args: argparse.Namespace, settings: Any) -> int:
    """Score a query against a JSON corpus."""
    from llmpipe.similarity.matcher import SimilarityMatcher
    from llmpipe.similarity.models import Candidate, SimilarityConfig

    if not args.corpus.exists():
        logger.error("Corpus not found: %s", args.corpus)
        return 1
    rows = json.loads(args.corpus.read_text(encoding="utf-8"))
    candidates = [Candidate.model_validate(r) for r in rows]

    matcher = SimilarityMatcher(SimilarityConfig.from_settings(settings))
    best = matcher.find_best_match(args.query, args.name, candidates, args.threshold)
    output: dict[str, Any] = {"match": best.model_dump(mode="json") if best else None}
    if args.top:
        output["top"] = [
            s.model_dump(mode="json")
            for s in matcher.rank(args.query, args.name, candidates, limit=args.top,
                                  threshold=args.threshold)
        ]
    _emit(output)
    return 0


async def _cmd_purge(args: argparse.Namespace, settings: Any) -> int:
    """Drop expired entries from the configured cache backend."""
    from llmpipe.cache.cache_factory import create_cache_store

    store = create_cache_store(settings)
    try:
        purged = await store.purge_expired()
    finally:
        store.close()
    logger.info("Purged %d expired cache entries (%s)", purged, settings.cache_backend)
    _emit({"backend": settings.cache_backend, "purged": purged})
    return 0


def _load_settings(args: argparse.Namespace) -> Any:
    from llmpipe.config.settings import load_settings

    if args.env_file is not None:
        return load_settings(_env_file=str(args.env_file))
    return load_settings()


def _read_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if path.is_file():
        return path.read_text(encoding="utf-8")
    return source


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _setup_logging(settings: Any, verbose: bool) -> None:
    from llmpipe.logging.logger import setup_logging_from_settings

    setup_logging_from_settings(settings, level="DEBUG" if verbose else None)
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
