"""Tests for helper utilities."""

from loguru import logger

from taskweave.utils.helpers import format_error, slugify_name, stringify, truncate_output
from taskweave.utils.logging import configure_logging


def test_slugify_name():
    assert slugify_name("Weather Bot") == "weather_bot"
    assert slugify_name("Q&A-helper 2") == "q_a_helper_2"


def test_stringify():
    assert stringify("plain") == "plain"
    assert stringify(None) == ""
    assert stringify({"a": 1}) == '{"a": 1}'
    assert stringify([1, "é"]) == '[1, "é"]'


def test_truncate_output():
    assert truncate_output("short", 10) == "short"
    text = "a" * 50 + "b" * 50
    result = truncate_output(text, 20)
    assert result.startswith("a" * 10)
    assert result.endswith("b" * 10)
    assert "truncated 80 chars" in result


def test_format_error():
    assert format_error(ValueError("bad input")) == "ValueError: bad input"
    assert format_error(KeyError()) == "KeyError"


def test_configure_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "taskweave.log"
    configure_logging("debug", log_file)
    logger.info("hello from the test")
    logger.complete()

    assert "hello from the test" in log_file.read_text(encoding="utf-8")
    logger.remove()
