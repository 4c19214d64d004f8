# tests/unit/cli/test_unit_main.py — v2
"""Tests for main.py — CLI commands that need no provider."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone

import pytest

from llmpipe.cache.models import CacheEntry
from llmpipe.main import main
from llmpipe.router.models import InvocationResult, ProviderAttempt


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    root = logging.getLogger("llmpipe")
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()
    root.propagate = True
    root.setLevel(logging.NOTSET)


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / "test.env"
    path.write_text("LLM_PROVIDER_CHAIN=openai:gpt-4o\nOPENAI_API_KEY=\n", encoding="utf-8")
    return str(path)


@pytest.fixture
def corpus_file(tmp_path):
    path = tmp_path / "corpus.json"
    path.write_text(json.dumps([
        {"id": "a1", "description": "send email reminders"},
        {"id": "a2", "description": "check tomorrow's weather", "name": "Weather"},
    ]), encoding="utf-8")
    return str(path)


class TestMatchCommand:
    def test_finds_match(self, env_file, corpus_file, capsys):
        code = main(["--env-file", env_file, "match", "weather forecast app",
                     "--corpus", corpus_file, "--top", "2"])
        assert code == 0
        out = json.loads(capsys.readouterr().out)
        assert out["match"]["candidate_id"] == "a2"
        assert len(out["top"]) == 2

    def test_no_match(self, env_file, corpus_file, capsys):
        code = main(["--env-file", env_file, "match", "play music",
                     "--corpus", corpus_file])
        assert code == 0
        assert json.loads(capsys.readouterr().out) == {"match": None}

    def test_missing_corpus(self, env_file, tmp_path):
        assert main(["--env-file", env_file, "match", "x",
                     "--corpus", str(tmp_path / "none.json")]) == 1


class TestRecoverCommand:
    def test_offline_repair(self, env_file, tmp_path, capsys):
        raw = tmp_path / "reply.txt"
        raw.write_text('Here it is:\n```json\n{"name": "bot",}\n```', encoding="utf-8")

        code = main(["--env-file", env_file, "recover", str(raw), "--offline"])

        assert code == 0
        out = json.loads(capsys.readouterr().out)
        assert out["method"] == "syntactic_cleanup"
        assert out["parsed_data"] == {"name": "bot"}

    def test_offline_failure_exit_code(self, env_file, tmp_path, capsys):
        raw = tmp_path / "reply.txt"
        raw.write_text("no json here", encoding="utf-8")
        assert main(["--env-file", env_file, "recover", str(raw), "--offline"]) == 1
        assert json.loads(capsys.readouterr().out)["method"] == "failed"

    def test_missing_file(self, env_file, tmp_path):
        assert main(["--env-file", env_file, "recover",
                     str(tmp_path / "absent.txt"), "--offline"]) == 1


class TestInvokeCommand:
    def test_unconfigured_chain_reports_fallback_chain(self, env_file, capsys, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        code = main(["--env-file", env_file, "invoke", "hello", "--skip-cache"])
        assert code == 1
        out = json.loads(capsys.readouterr().out)
        assert out["error"] == "all_providers_failed"
        assert out["fallback_chain"][0]["provider"] == "openai"
        assert out["fallback_chain"][0]["error_kind"] == "unknown"


class TestPurgeCommand:
    def test_removes_only_expired_json_entries(self, tmp_path, capsys):
        cache_root = tmp_path / "cache"
        cache_root.mkdir()
        result = InvocationResult(
            text="hi", provider="openai",
            fallback_chain=[ProviderAttempt(provider="openai", success=True)],
        )
        stale = CacheEntry(
            key="stale", value=result, ttl_seconds=60,
            created_at=datetime.now(timezone.utc) - timedelta(hours=1),
        )
        fresh = CacheEntry(key="fresh", value=result, ttl_seconds=3600)
        for entry in (stale, fresh):
            (cache_root / f"{entry.key}.json").write_text(entry.model_dump_json(), encoding="utf-8")
        env = tmp_path / "purge.env"
        env.write_text(
            f"LLM_PROVIDER_CHAIN=openai:gpt-4o\nCACHE_BACKEND=json\nCACHE_ROOT={cache_root}\n",
            encoding="utf-8",
        )

        code = main(["--env-file", str(env), "purge"])

        assert code == 0
        assert json.loads(capsys.readouterr().out) == {"backend": "json", "purged": 1}
        assert sorted(p.name for p in cache_root.glob("*.json")) == ["fresh.json"]

    def test_memory_backend_has_nothing_to_purge(self, env_file, capsys):
        assert main(["--env-file", env_file, "purge"]) == 0
        assert json.loads(capsys.readouterr().out) == {"backend": "memory", "purged": 0}


class TestParser:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "llmpipe" in capsys.readouterr().out
