"""
Unit tests for the CLI entry point.

The Chroma connection is replaced by the in-memory recording backend.
"""

import pytest

from bulkimport.backend.base import BackendConnectionError
from bulkimport.cli import importer
from bulkimport.cli.importer import (
    EXIT_BACKEND_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_IMPORT_ERROR,
    EXIT_SUCCESS,
    main,
    run_import_from_config,
)
from bulkimport.config.settings import ConfigurationError
from bulkimport.models import RunState


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("BULKIMPORT_CONFIG", raising=False)
    return tmp_path


def _config(workdir, count=3, extra=""):
    data = workdir / "data"
    data.mkdir()
    for i in range(count):
        (data / f"doc{i}.json").write_text(f'{{"n": {i}}}', encoding="utf-8")
    path = workdir / "import.yml"
    path.write_text(
        f"bulkimport:\n  collection: docs\n  root: {data.as_posix()}\n{extra}",
        encoding="utf-8",
    )
    return path


def _args(workdir, *args):
    return [*args, "--log-file", str(workdir / "import.log")]


def test_no_configuration_prints_usage(workdir, capsys):
    """Test that a run without any configuration exits 1 with usage."""
    assert main(_args(workdir)) == EXIT_CONFIG_ERROR
    assert "Usage" in capsys.readouterr().out


def test_empty_configuration_prints_usage(workdir, capsys):
    """Test that an empty configuration file exits 1 with usage."""
    path = workdir / "empty.yml"
    path.write_text("", encoding="utf-8")

    assert main(_args(workdir, str(path))) == EXIT_CONFIG_ERROR
    assert "Usage" in capsys.readouterr().out


def test_invalid_configuration(workdir):
    """Test that an invalid value exits 1."""
    path = _config(workdir, extra="  max_bulk_actions: 0\n")

    assert main(_args(workdir, str(path))) == EXIT_CONFIG_ERROR


def test_missing_root_folder(workdir):
    """Test that a nonexistent root exits 1 before connecting."""
    path = workdir / "import.yml"
    path.write_text("bulkimport:\n  collection: docs\n  root: ./nowhere\n", encoding="utf-8")

    assert main(_args(workdir, str(path))) == EXIT_CONFIG_ERROR


def test_successful_import(workdir, capsys, monkeypatch, backend):
    """Test exit 0 and the final count on stdout."""
    monkeypatch.setattr(importer, "create_backend", lambda settings: backend)

    exit_code = main(_args(workdir, str(_config(workdir, count=3))))

    assert exit_code == EXIT_SUCCESS
    assert "Indexed 3 documents" in capsys.readouterr().out
    assert backend.closed


def test_default_configuration_file(workdir, capsys, monkeypatch, backend):
    """Test that ./bulkimport.yml is used when no argument is given."""
    monkeypatch.setattr(importer, "create_backend", lambda settings: backend)
    _config(workdir, count=2).rename(workdir / "bulkimport.yml")

    assert main(_args(workdir)) == EXIT_SUCCESS
    assert "Indexed 2 documents" in capsys.readouterr().out


def test_errored_import(workdir, capsys, monkeypatch, make_backend):
    """Test exit 3 and the partial count when a document is rejected."""
    backend = make_backend(fail_nth_document=1)
    monkeypatch.setattr(importer, "create_backend", lambda settings: backend)

    exit_code = main(_args(workdir, str(_config(workdir, count=3))))

    assert exit_code == EXIT_IMPORT_ERROR
    assert "Indexed 2 documents" in capsys.readouterr().out


def test_backend_unreachable(workdir, monkeypatch):
    """Test exit 2 when the backend cannot be reached."""

    def refuse(settings):
        raise BackendConnectionError("No Chroma endpoint reachable")

    monkeypatch.setattr(importer, "create_backend", refuse)

    assert main(_args(workdir, str(_config(workdir)))) == EXIT_BACKEND_ERROR


def test_run_import_from_config(workdir, monkeypatch, backend):
    """Test the programmatic entry point returns the report."""
    monkeypatch.setattr(importer, "create_backend", lambda settings: backend)

    report = run_import_from_config(_config(workdir, count=4))

    assert report.state == RunState.DONE
    assert report.result == 4


def test_run_import_from_config_raises_on_bad_root(workdir):
    """Test that the programmatic entry point raises instead of exiting."""
    path = workdir / "import.yml"
    path.write_text("bulkimport:\n  collection: docs\n  root: ./nowhere\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        run_import_from_config(path)


def test_usage_shows_quoted_wildcard(workdir, capsys):
    """Test that the usage example explains how to match every file."""
    main(_args(workdir))

    assert 'fileext: "*"' in capsys.readouterr().out
