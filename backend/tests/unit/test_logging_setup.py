import logging

from taskflow.logging_setup import LOG_FORMAT, configure_logging


def test_configure_logging_is_idempotent(monkeypatch):
    root = logging.getLogger()
    before_handlers, before_level = list(root.handlers), root.level
    try:
        monkeypatch.setenv("LOG_LEVEL", "debug")
        configure_logging()
        configure_logging()
        ours = [h for h in root.handlers if getattr(h, "_taskflow", False)]
        assert len(ours) == 1
        assert ours[0].formatter._fmt == LOG_FORMAT
        assert root.level == logging.DEBUG
        configure_logging("warning")
        assert root.level == logging.WARNING
    finally:
        root.handlers[:] = before_handlers
        root.setLevel(before_level)
