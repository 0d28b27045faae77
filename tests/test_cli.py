"""
Tests for the attendance command-line interface (memory backend).

Run with: pytest tests/test_cli.py -v
"""

import json

import pytest

from attendance import cli, config
from attendance.backends.memory import MemoryBackend

ENV = {"ATTENDANCE_BACKEND": "memory"}

SUBMIT = [
    "submit", "--name", "Asha Rao", "--system-id", "2023001", "--course", "B.Tech",
    "--year", "2", "--section", "A", "--group", "G1", "--email", "asha@ug.sharda.ac.in",
]


@pytest.fixture
def backend(monkeypatch):
    """One MemoryBackend shared by every CLI invocation in a test."""
    shared = MemoryBackend()
    monkeypatch.setattr(config, "build_backend", lambda settings: (shared, None))
    return shared


class TestSubmit:
    def test_submit_then_list(self, backend, capsys):
        assert cli.main(SUBMIT, environ=ENV) == cli.EXIT_OK
        capsys.readouterr()
        assert cli.main(["list", "--course", "B.Tech"], environ=ENV) == cli.EXIT_OK
        out = json.loads(capsys.readouterr().out)
        assert out["count"] == 1
        assert out["data"][0]["System ID"] == "2023001"
        assert out["data"][0]["Sharda Email"] == "asha@ug.sharda.ac.in"

    def test_duplicate_exit_code(self, backend, capsys):
        cli.main(SUBMIT, environ=ENV)
        assert cli.main(SUBMIT, environ=ENV) == cli.EXIT_DUPLICATE
        assert "already been registered" in capsys.readouterr().err

    def test_invalid_email_exit_code(self, backend):
        argv = SUBMIT[:-1] + ["asha@gmail.com"]
        assert cli.main(argv, environ=ENV) == cli.EXIT_VALIDATION

    def test_missing_argument_is_usage_error(self, backend):
        with pytest.raises(SystemExit) as exc:
            cli.main(["submit", "--name", "X"], environ=ENV)
        assert exc.value.code != 0


class TestQueries:
    def test_categories(self, backend, capsys):
        cli.main(SUBMIT, environ=ENV)
        capsys.readouterr()
        cli.main(["categories"], environ=ENV)
        assert json.loads(capsys.readouterr().out) == {"count": 1, "data": ["B.Tech_A"]}

    def test_list_year_and_section_filters(self, backend, capsys):
        cli.main(SUBMIT, environ=ENV)
        capsys.readouterr()
        cli.main(["list", "--year", "2", "--section", "B"], environ=ENV)
        assert json.loads(capsys.readouterr().out)["count"] == 0
        cli.main(["list", "--year", "2", "--section", "A"], environ=ENV)
        assert json.loads(capsys.readouterr().out)["count"] == 1

    def test_category_records(self, backend, capsys):
        cli.main(SUBMIT, environ=ENV)
        capsys.readouterr()
        cli.main(["category", "B.Tech_A", "--group", "G2"], environ=ENV)
        assert json.loads(capsys.readouterr().out)["count"] == 0


class TestExport:
    def test_organized_to_file(self, backend, tmp_path):
        cli.main(SUBMIT, environ=ENV)
        path = tmp_path / "out.csv"
        assert cli.main(["export", "-o", str(path)], environ=ENV) == cli.EXIT_OK
        assert path.read_text(encoding="utf-8").startswith("COURSE,B.Tech\n")

    def test_flat_to_file(self, backend, tmp_path):
        cli.main(SUBMIT, environ=ENV)
        path = tmp_path / "flat.csv"
        cli.main(["export", "--flat", "-o", str(path)], environ=ENV)
        assert path.read_text(encoding="utf-8").startswith('"Timestamp","Name"')


class TestErrors:
    def test_bad_backend_name(self, capsys):
        assert cli.main(["categories"], environ={"ATTENDANCE_BACKEND": "excel"}) == cli.EXIT_VALIDATION
        assert "ATTENDANCE_BACKEND" in capsys.readouterr().err

    def test_reconcile_reports_count(self, backend, capsys):
        cli.main(SUBMIT, environ=ENV)
        capsys.readouterr()
        assert cli.main(["reconcile"], environ=ENV) == cli.EXIT_OK
        assert "Reconciled 0 row(s)." in capsys.readouterr().out
