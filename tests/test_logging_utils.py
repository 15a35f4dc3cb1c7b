import logging
import time

import pytest
from loguru import logger

from voxelamming import logging_utils


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    logger.remove()
    logging.basicConfig(handlers=[], force=True)


def _wait_for(path, text, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if path.exists() and text in path.read_text(encoding="utf-8"):
            return True
        time.sleep(0.02)
    return False


def test_file_sink_receives_stdlib_records(tmp_path):
    log_file = logging_utils.configure_logging(log_dir=tmp_path, console_level="WARNING")
    assert log_file == tmp_path / "voxelamming.log"

    logging.getLogger("voxelamming.test").info("hello from stdlib")
    logger.complete()

    assert _wait_for(log_file, "hello from stdlib")


def test_no_file_sink_without_log_dir(tmp_path):
    assert logging_utils.configure_logging(log_dir=None) is None
    assert not (tmp_path / "voxelamming.log").exists()


def test_intercept_handler_installed():
    logging_utils.configure_logging(log_dir=None, console_json=True)
    handlers = logging.getLogger().handlers
    assert any(isinstance(h, logging_utils.InterceptHandler) for h in handlers)


def test_unwritable_log_dir_falls_back_to_console(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    assert logging_utils.configure_logging(log_dir=blocker / "logs") is None
