"""
test_cli.py - Command Line Workflow Tests

End-to-end tests that drive cli.main() with real files in a temporary
directory and check exit codes and output.

Run with: python -m pytest tests/ -v
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import cli
from registry import MarkerRegistry
from stegano_core import SteganoEngine

# ═══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment variables out of CLI runs."""
    for name in (
        "TEXTMARK_CHUNK_SIZE",
        "TEXTMARK_THRESHOLD",
        "TEXTMARK_EVIDENCE_LIMIT",
        "TEXTMARK_WORKERS",
        "TEXTMARK_LOG_LEVEL",
        "TEXTMARK_REGISTRY",
        "DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def essay_file(tmp_path):
    path = tmp_path / "essay.txt"
    path.write_text(
        "Invisible markers survive copy and paste.\r\n\r\n"
        "Readers never notice them while reading the text.\r\n\r\n"
        "Only a scanner can reveal the hidden author note.",
        encoding="utf-8",
        newline="",
    )
    return path


@pytest.fixture
def corpus_dir(tmp_path, essay_file):
    corpus = tmp_path / "corpus"
    corpus.mkdir()
    (corpus / "original.txt").write_text(essay_file.read_text(encoding="utf-8"), encoding="utf-8")
    (corpus / "recipe.txt").write_text(
        "Mix flour with water and salt, then knead the dough for ten minutes.", encoding="utf-8"
    )
    return corpus


def _embed(essay_file, *extra):
    output = essay_file.with_name("marked.txt")
    code = cli.main(["embed", str(essay_file), *extra, "-o", str(output)])
    return code, output


# ═══════════════════════════════════════════════════════════════════════════════
# WATERMARK COMMANDS
# ═══════════════════════════════════════════════════════════════════════════════


class TestWatermarkCommands:
    """Tests for embed / extract / trace / verify / strip."""

    def test_embed_then_extract(self, essay_file, capsys):
        code, output = _embed(essay_file, "Author: Jane Doe")
        assert code == 0
        capsys.readouterr()

        assert cli.main(["extract", str(output)]) == 2
        assert "Author: Jane Doe" in capsys.readouterr().out

    def test_embed_preserves_bytes_outside_marker(self, essay_file):
        code, output = _embed(essay_file, "AB")
        assert code == 0

        with open(output, encoding="utf-8", newline="") as f:
            marked = f.read()
        with open(essay_file, encoding="utf-8", newline="") as f:
            original = f.read()

        assert SteganoEngine().strip(marked) == original
        assert "\r\n\r\n" in SteganoEngine().strip(marked)

    def test_embed_default_marker_and_output_name(self, essay_file, capsys):
        assert cli.main(["embed", str(essay_file), "--author", "Jane"]) == 0
        output = essay_file.with_name("essay_marked.txt")
        assert output.exists()
        capsys.readouterr()

        assert cli.main(["extract", str(output), "--json"]) == 2
        assert json.loads(capsys.readouterr().out)["marker"] == "Author: Jane"

    def test_embed_unknown_author_default(self, essay_file, capsys):
        code, output = _embed(essay_file)
        assert code == 0
        capsys.readouterr()

        cli.main(["extract", str(output), "--json"])
        assert json.loads(capsys.readouterr().out)["marker"] == "Author: Unknown"

    def test_embed_rejects_unsupported_marker(self, essay_file, capsys):
        code, output = _embed(essay_file, "Author: 张伟")

        assert code == 1
        assert not output.exists()
        assert "cannot be encoded" in capsys.readouterr().out

    def test_embed_missing_file(self, tmp_path, capsys):
        assert cli.main(["embed", str(tmp_path / "missing.txt"), "AB"]) == 1
        assert "File not found" in capsys.readouterr().out

    def test_extract_plain_file(self, essay_file, capsys):
        assert cli.main(["extract", str(essay_file), "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["marker"] is None

    def test_trace_json(self, essay_file, capsys):
        _, output = _embed(essay_file, "TraceMe")
        capsys.readouterr()

        assert cli.main(["trace", str(output), "--json"]) == 2
        data = json.loads(capsys.readouterr().out)
        assert data["marker"] == "TraceMe"
        assert data["total_runs"] == 2

    def test_trace_human_readable(self, essay_file, capsys):
        assert cli.main(["trace", str(essay_file)]) == 0
        assert "NO MARKER DETECTED" in capsys.readouterr().out

    def test_registry_workflow(self, essay_file, tmp_path, capsys):
        registry_path = tmp_path / "markers.json"
        code, output = _embed(essay_file, "Author: Jane Doe", "--registry", str(registry_path))
        assert code == 0

        registry = MarkerRegistry.load(registry_path)
        assert registry.lookup("Author: Jane Doe").filename == "essay.txt"
        capsys.readouterr()

        assert cli.main(["trace", str(output), "--registry", str(registry_path), "--json"]) == 2
        data = json.loads(capsys.readouterr().out)
        assert data["registry_entry"]["filename"] == "essay.txt"

    def test_registry_from_environment(self, essay_file, tmp_path, monkeypatch):
        registry_path = tmp_path / "env_markers.json"
        monkeypatch.setenv("TEXTMARK_REGISTRY", str(registry_path))

        code, _ = _embed(essay_file, "EnvMarker")

        assert code == 0
        assert "EnvMarker" in MarkerRegistry.load(registry_path)

    def test_broken_registry_is_an_error(self, essay_file, tmp_path, capsys):
        registry_path = tmp_path / "broken.json"
        registry_path.write_text("[", encoding="utf-8")

        assert cli.main(["trace", str(essay_file), "--registry", str(registry_path)]) == 1

    def test_broken_registry_leaves_no_output(self, essay_file, tmp_path, capsys):
        registry_path = tmp_path / "broken.json"
        registry_path.write_text("[", encoding="utf-8")

        code, output = _embed(essay_file, "Author: Jane Doe", "--registry", str(registry_path))

        assert code == 1
        assert not output.exists()
        assert registry_path.read_text(encoding="utf-8") == "["

    def test_verify_quiet(self, essay_file, tmp_path, capsys):
        _, output = _embed(essay_file, "Quiet")
        capsys.readouterr()

        assert cli.main(["verify", "-q", str(output)]) == 2
        assert cli.main(["verify", "-q", str(essay_file)]) == 0
        assert cli.main(["verify", "-q", str(tmp_path / "missing.txt")]) == 1
        assert capsys.readouterr().out == ""

    def test_strip(self, essay_file, tmp_path):
        _, output = _embed(essay_file, "StripMe")
        cleaned = tmp_path / "cleaned.txt"

        assert cli.main(["strip", str(output), "-o", str(cleaned)]) == 0
        assert cleaned.read_bytes() == essay_file.read_bytes()


# ═══════════════════════════════════════════════════════════════════════════════
# SIMILARITY COMMAND
# ═══════════════════════════════════════════════════════════════════════════════


class TestCheckCommand:
    """Tests for the similarity check command."""

    def test_check_flags_copy(self, essay_file, corpus_dir, capsys):
        assert cli.main(["check", str(essay_file), str(corpus_dir), "--json"]) == 2

        data = json.loads(capsys.readouterr().out)
        assert data["best_match"]["name"] == "original.txt"
        assert data["best_match"]["score"] == 1.0
        assert [r["name"] for r in data["flagged"]] == ["original.txt"]

    def test_check_watermarked_copy_still_matches(self, essay_file, corpus_dir, capsys):
        _, output = _embed(essay_file, "Author: Jane Doe")
        capsys.readouterr()

        assert cli.main(["check", str(output), str(corpus_dir), "--json", "--workers", "2"]) == 2
        assert json.loads(capsys.readouterr().out)["best_match"]["score"] == 1.0

    def test_check_no_match(self, tmp_path, corpus_dir, capsys):
        query = tmp_path / "query.txt"
        query.write_text("A completely different sentence about distant mountain ranges.", encoding="utf-8")

        assert cli.main(["check", str(query), str(corpus_dir)]) == 0
        assert "No significant overlap" in capsys.readouterr().out

    def test_check_chunk_size_from_environment(self, tmp_path, corpus_dir, monkeypatch, capsys):
        monkeypatch.setenv("TEXTMARK_CHUNK_SIZE", "2")
        query = tmp_path / "query.txt"
        query.write_text("knead the dough", encoding="utf-8")

        assert cli.main(["check", str(query), str(corpus_dir), "--json"]) == 2
        assert json.loads(capsys.readouterr().out)["chunk_size"] == 2

    def test_check_empty_corpus(self, essay_file, tmp_path, capsys):
        empty = tmp_path / "empty"
        empty.mkdir()

        assert cli.main(["check", str(essay_file), str(empty)]) == 1
        assert "No reference documents" in capsys.readouterr().out

    def test_check_invalid_threshold(self, essay_file, corpus_dir, capsys):
        assert cli.main(["check", str(essay_file), str(corpus_dir), "--threshold", "3"]) == 1


# ═══════════════════════════════════════════════════════════════════════════════
# MISC
# ═══════════════════════════════════════════════════════════════════════════════


class TestMain:
    """Tests for the entry point itself."""

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_invalid_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("TEXTMARK_THRESHOLD", "not-a-number")

        assert cli.main(["demo"]) == 1
        assert "Invalid configuration: TEXTMARK_THRESHOLD" in capsys.readouterr().out

    def test_invalid_log_level(self, monkeypatch, capsys):
        monkeypatch.setenv("TEXTMARK_LOG_LEVEL", "chatty")

        assert cli.main(["demo"]) == 1
        assert "Unknown log level" in capsys.readouterr().out

    def test_demo(self, capsys):
        assert cli.main(["demo"]) == 0

        out = capsys.readouterr().out
        assert "Author: Demo User" in out
        assert "Similarity Report" in out


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
