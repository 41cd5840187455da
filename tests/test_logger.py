# tests/test_logger.py
import logging
import uuid

from utils import logger as logger_module
from utils.logger import setup_logger


def test_component_loggers_write_to_log_file(tmp_path, monkeypatch):
    log_file = tmp_path / "app.log"
    monkeypatch.setenv("LOG_FILE", str(log_file))
    monkeypatch.setattr(logger_module, "_file_handler", None)
    name = f"TEST_{uuid.uuid4().hex[:6].upper()}"

    log = setup_logger(name)
    log.info("archived record 42")

    handler = logger_module._file_handler
    handler.flush()
    assert log.propagate is False
    assert f"[INFO] [{name}]: archived record 42" in log_file.read_text()

    log.removeHandler(handler)
    handler.close()


def test_empty_log_file_disables_file_handler(monkeypatch):
    monkeypatch.setenv("LOG_FILE", "")
    monkeypatch.setattr(logger_module, "_file_handler", None)

    log = setup_logger(f"TEST_{uuid.uuid4().hex[:6].upper()}")

    assert not any(isinstance(h, logging.FileHandler) for h in log.handlers)


def test_repeated_setup_does_not_stack_handlers():
    name = f"TEST_{uuid.uuid4().hex[:6].upper()}"
    first = setup_logger(name)
    count = len(first.handlers)

    assert setup_logger(name) is first
    assert len(first.handlers) == count
