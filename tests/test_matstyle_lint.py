# SPDX-License-Identifier: MIT
"""Tests for matstyle.lint and the matstyle CLI — source collection, exit codes, outputs."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from matstyle import lint
from matstyle.__main__ import build_parser, cli
from matstyle.lint import (
    EXIT_FAIL,
    EXIT_INDETERMINATE,
    EXIT_PASS,
    EXIT_USAGE,
    collect_sources,
    main,
    read_source,
)
from matstyle.rules import CancelToken

CLEAN = "value = 1;\n"
BROKEN = "global counter\n"
MESSY = "value = 1;   \n"  # trailing whitespace, SHOULD only


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("MATSTYLE_PROFILE", "MATSTYLE_RULE_TIMEOUT", "MATSTYLE_WORKERS", "GITHUB_OUTPUT"):
        monkeypatch.delenv(var, raising=False)


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestCollectSources:
    def test_directory_is_searched_recursively(self, tmp_path: Path) -> None:
        _write(tmp_path / "b.m", CLEAN)
        _write(tmp_path / "+pkg" / "a.m", CLEAN)
        _write(tmp_path / "notes.txt", "not matlab")
        found = collect_sources([tmp_path])
        assert [p.relative_to(tmp_path).as_posix() for p in found] == ["+pkg/a.m", "b.m"]

    def test_explicit_file_kept_without_suffix(self, tmp_path: Path) -> None:
        script = _write(tmp_path / "script.txt", CLEAN)
        assert collect_sources([script]) == [script]

    def test_duplicates_dropped(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "a.m", CLEAN)
        assert collect_sources([source, tmp_path, source]) == [source]

    def test_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            collect_sources([tmp_path / "absent.m"])


class TestReadSource:
    def test_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "a.m"
        path.write_bytes("% Größe\n".encode())
        assert read_source(path) == "% Größe\n"

    def test_latin1_fallback(self, tmp_path: Path) -> None:
        path = tmp_path / "a.m"
        path.write_bytes("% Größe\n".encode("latin-1"))
        assert read_source(path) == "% Größe\n"


class TestExitCodes:
    def test_pass(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        source = _write(tmp_path / "clean.m", CLEAN)
        assert main([source]) == EXIT_PASS
        assert capsys.readouterr().out.strip().startswith("PASS")

    def test_should_findings_do_not_fail(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "messy.m", MESSY)
        assert main([source]) == EXIT_PASS

    def test_fail(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        source = _write(tmp_path / "broken.m", BROKEN)
        assert main([source]) == EXIT_FAIL
        assert "[MUST] S001" in capsys.readouterr().out

    def test_unparseable_source_fails(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "bad.m", "x = 'unterminated\n")
        assert main([source]) == EXIT_FAIL

    def test_unreadable_file_does_not_drop_batch(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        _write(tmp_path / "locked.m", CLEAN)
        _write(tmp_path / "good.m", BROKEN)
        original = lint.read_source

        def _read(path: Path) -> str:
            if path.name == "locked.m":
                raise PermissionError(13, "Permission denied")
            return original(path)

        monkeypatch.setattr(lint, "read_source", _read)
        assert main([tmp_path], output_format="json") == EXIT_FAIL
        data = json.loads(capsys.readouterr().out)
        seen = {(Path(f["location"]["path"]).name, f["rule_id"]) for f in data["findings"]}
        assert ("locked.m", "unparseable-source") in seen
        assert ("good.m", "S001") in seen

    def test_no_paths(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == EXIT_USAGE
        assert "::error::" in capsys.readouterr().out

    def test_missing_path(self, tmp_path: Path) -> None:
        assert main([tmp_path / "absent.m"]) == EXIT_USAGE

    def test_unknown_format(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "clean.m", CLEAN)
        assert main([source], output_format="xml") == EXIT_USAGE

    def test_bad_profile(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        source = _write(tmp_path / "clean.m", CLEAN)
        assert main([source], profile="nope") == EXIT_USAGE
        assert "Invalid configuration" in capsys.readouterr().out

    def test_bad_env_timeout(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MATSTYLE_RULE_TIMEOUT", "soon")
        source = _write(tmp_path / "clean.m", CLEAN)
        assert main([source]) == EXIT_USAGE

    def test_interrupted_run(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        class _AlreadyCancelled(CancelToken):
            def __init__(self) -> None:
                super().__init__()
                self.cancel()

        monkeypatch.setattr(lint, "CancelToken", _AlreadyCancelled)
        source = _write(tmp_path / "broken.m", BROKEN)
        assert main([source]) == EXIT_INDETERMINATE

    def test_empty_directory_passes(self, tmp_path: Path) -> None:
        assert main([tmp_path]) == EXIT_PASS


class TestOutputs:
    def test_json_to_stdout(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        source = _write(tmp_path / "broken.m", BROKEN)
        main([source], output_format="json")
        data = json.loads(capsys.readouterr().out)
        assert data["verdict"] == "fail"
        assert data["findings"][0]["rule_id"] == "S001"

    def test_output_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        source = _write(tmp_path / "broken.m", BROKEN)
        target = tmp_path / "report.txt"
        assert main([source], output=target) == EXIT_FAIL
        assert "S001" in target.read_text(encoding="utf-8")
        assert "S001" not in capsys.readouterr().out

    def test_github_annotations(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        source = _write(tmp_path / "broken.m", BROKEN)
        main([source], output_format="github")
        assert capsys.readouterr().out.startswith("::error file=")

    def test_step_outputs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        outputs = tmp_path / "github_output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(outputs))
        source = _write(tmp_path / "broken.m", BROKEN)
        main([source], profile="strict")
        lines = outputs.read_text(encoding="utf-8").splitlines()
        assert "verdict=fail" in lines
        assert "must-count=1" in lines
        assert "profile=strict" in lines

    def test_list_rules(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([], list_rules=True) == EXIT_PASS
        assert "E001" in capsys.readouterr().out


class TestBaseline:
    def _baseline(self, tmp_path: Path, source: Path) -> Path:
        target = tmp_path / "baseline.json"
        main([source], output_format="json", output=target)
        return target

    def test_known_must_findings_pass(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "broken.m", BROKEN)
        baseline = self._baseline(tmp_path, source)
        # Same finding on a different line still matches.
        source.write_text("value = 1;\n" + BROKEN, encoding="utf-8")
        assert main([source], baseline=baseline) == EXIT_PASS

    def test_new_must_finding_fails(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "broken.m", BROKEN)
        baseline = self._baseline(tmp_path, source)
        source.write_text(BROKEN + "eval('x = 1');\n", encoding="utf-8")
        assert main([source], baseline=baseline) == EXIT_FAIL

    def test_new_must_count_written(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        source = _write(tmp_path / "broken.m", BROKEN)
        baseline = self._baseline(tmp_path, source)
        outputs = tmp_path / "github_output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(outputs))
        main([source], baseline=baseline)
        assert "new-must-count=0" in outputs.read_text(encoding="utf-8").splitlines()

    def test_unreadable_baseline(self, tmp_path: Path) -> None:
        source = _write(tmp_path / "broken.m", BROKEN)
        junk = _write(tmp_path / "junk.json", "[1, 2]")
        assert main([source], baseline=junk) == EXIT_USAGE
        assert main([source], baseline=tmp_path / "absent.json") == EXIT_USAGE


class TestCli:
    def test_parser_defaults(self) -> None:
        args = build_parser().parse_args(["src"])
        assert args.paths == ["src"]
        assert args.output_format == "text"
        assert args.profile is None
        assert not args.list_rules

    def test_rejects_unknown_profile(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--profile", "nope", "src"])

    def test_cli_runs_main(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        source = _write(tmp_path / "broken.m", BROKEN)
        assert cli([str(source), "--format", "json", "--workers", "2"]) == EXIT_FAIL
        assert json.loads(capsys.readouterr().out)["summary"]["must_count"] == 1
