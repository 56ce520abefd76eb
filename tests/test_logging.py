import logging
from pathlib import Path

from cbz2epub.cli import setup_logging


def test_color_enabled_shows_emoji_and_ansi(capsys):
    setup_logging(verbose=False, force_color=True)
    logging.getLogger("test_color_enabled").info("hello color")
    err = capsys.readouterr().err
    assert "✅ INFO:" in err
    assert "\x1b[" in err


def test_color_disabled_no_ansi_but_emoji_present(capsys):
    setup_logging(verbose=False, force_color=False)
    logging.getLogger("test_color_disabled").info("hello plain")
    err = capsys.readouterr().err
    assert "✅ INFO:" in err
    assert "\x1b[" not in err


def test_loglevel_overrides_verbose(capsys):
    setup_logging(verbose=True, loglevel="WARN", force_color=False)
    log = logging.getLogger("test_loglevel")
    log.info("hidden")
    log.warning("shown")
    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "⚠️ WARNING: shown" in err


def test_exception_traceback_included(capsys):
    setup_logging(force_color=False)
    try:
        raise ValueError("kaboom")
    except ValueError:
        logging.getLogger("test_exc").exception("failed")
    err = capsys.readouterr().err
    assert "❌ ERROR: failed" in err
    assert "ValueError: kaboom" in err


def test_cli_loglevel_debug_shows_pipeline_steps(tmp_path: Path, make_cbz, run_cli):
    src = make_cbz(tmp_path)

    res = run_cli(["convert", src, "-r", "10", "--loglevel", "DEBUG"])

    assert res.returncode == 0, res.stderr
    assert "🔧 DEBUG:" in res.stderr
    assert "transforming page1.jpg" in res.stderr
    assert "removed scratch workspace" in res.stderr


def test_archive_loggers_are_tagged(capsys):
    setup_logging(force_color=False)
    logging.getLogger("cbz2epub.worker.Berserk v01").error("boom")
    logging.getLogger("cbz2epub.converter").info("untagged")
    err = capsys.readouterr().err
    assert "❌ ERROR: [Berserk v01] boom" in err
    assert "✅ INFO: untagged" in err
