import io

import pytest

from bashcord_installer.log import Level, Logger, debug_requested


def _logger(level=Level.INFO):
    stream = io.StringIO()
    return Logger(level=level, stream=stream, color=False), stream


@pytest.mark.parametrize(
    "argv, expected",
    [
        (["prog", "--debug"], True),
        (["prog", "-debug"], True),
        (["prog"], False),
        (["prog", "--debugging"], False),
    ],
)
def test_debug_requested(argv, expected):
    assert debug_requested(argv) is expected


def test_level_threshold_filters_lower_levels():
    logger, stream = _logger(Level.WARN)
    logger.debug("d")
    logger.info("i")
    logger.warn("w")
    logger.log(Level.ERROR, "e")
    assert stream.getvalue() == "WARN  w\nERROR e\n"


def test_messages_below_level_are_dropped():
    logger, stream = _logger(Level.INFO)
    logger.debug("hidden")
    assert stream.getvalue() == ""


def test_info_is_padded_and_space_separated():
    logger, stream = _logger(Level.INFO)
    logger.info("hello", 1)
    assert stream.getvalue() == "INFO  hello 1\n"


def test_error_prefix_fills_width():
    logger, stream = _logger(Level.DEBUG)
    logger.error("boom")
    assert stream.getvalue() == "ERROR boom\n"


def test_debug_shown_at_debug_level():
    logger, stream = _logger(Level.DEBUG)
    logger.debug("x")
    assert stream.getvalue().startswith("DEBUG")


def test_warn_prefix():
    logger, stream = _logger(Level.DEBUG)
    logger.warn("careful")
    assert stream.getvalue().split() == ["WARN", "careful"]


def test_fatal_exits_with_status_one():
    logger, stream = _logger()
    with pytest.raises(SystemExit) as info:
        logger.fatal("dead")
    assert info.value.code == 1
    assert "dead" in stream.getvalue()


def test_fatal_if_err_with_none_does_nothing():
    logger, stream = _logger()
    logger.fatal_if_err(None)
    assert stream.getvalue() == ""


def test_fatal_if_err_with_error_exits():
    logger, stream = _logger()
    with pytest.raises(SystemExit) as info:
        logger.fatal_if_err(ValueError("bad"))
    assert info.value.code == 1
    assert "bad" in stream.getvalue()


def test_color_adds_escape_codes(monkeypatch):
    monkeypatch.setenv("FORCE_COLOR", "1")
    monkeypatch.delenv("NO_COLOR", raising=False)
    stream = io.StringIO()
    Logger(level=Level.INFO, stream=stream, color=True).info("msg")
    assert "\x1b[" in stream.getvalue()