import logging

import pytest

from temporalop.logconfig import LogConfig, LogSpec, SDKLogAdapter, new_log_config

LOGGER_NAME = "temporalop.test"


def test_default_config():
    cfg = new_log_config(None)
    assert cfg.stdout is True
    assert cfg.level == "info"


def test_stdout_defaults_to_true():
    cfg = new_log_config(LogSpec(level="debug"))
    assert cfg == LogConfig(stdout=True, level="debug")


def test_fields_carry_over():
    spec = LogSpec(stdout=False, level="warn", output_file="/tmp/t.log", format="json", development=True)
    cfg = new_log_config(spec)
    assert (cfg.stdout, cfg.level, cfg.output_file, cfg.format, cfg.development) == (
        spec.stdout,
        spec.level,
        spec.output_file,
        spec.format,
        spec.development,
    )


@pytest.fixture
def adapter(caplog):
    caplog.set_level(1, logger=LOGGER_NAME)
    return SDKLogAdapter(logging.getLogger(LOGGER_NAME))


def test_adapter_levels(adapter, caplog):
    adapter.debug("d")
    adapter.info("i")
    adapter.warn("w")
    adapter.error("e")
    assert [(r.getMessage(), r.levelno) for r in caplog.records] == [
        ("d", logging.DEBUG),
        ("i", logging.INFO),
        ("w", logging.INFO - 5),
        ("e", logging.INFO),
    ]


def test_adapter_formats_keyvals(adapter, caplog):
    adapter.info("connecting", "address", "localhost:7233")
    assert caplog.records[0].getMessage() == "connecting address=localhost:7233"


def test_adapter_plain_message(adapter, caplog):
    adapter.info("hello")
    assert caplog.records[0].getMessage() == "hello"


def test_adapter_respects_logger_level(caplog):
    caplog.set_level(logging.INFO, logger=LOGGER_NAME)
    SDKLogAdapter(logging.getLogger(LOGGER_NAME)).debug("hidden")
    assert caplog.records == []