import logging
import logging.handlers

import structlog
from checkout.utils.logging import (
    bind_request_context,
    build_processors,
    clear_request_context,
    get_log_level,
    setup_stdlib_logging,
)


class TestLogLevel:
    def test_level_follows_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.setenv("PROTEAN_ENV", "production")
        assert get_log_level() == "INFO"

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        assert get_log_level() == "ERROR"


class TestProcessors:
    def test_production_renders_json(self):
        assert isinstance(build_processors("production")[-1], structlog.processors.JSONRenderer)

    def test_development_renders_console(self):
        assert isinstance(build_processors("development")[-1], structlog.dev.ConsoleRenderer)


class TestFileHandler:
    def test_log_dir_adds_rotating_file(self, tmp_path, monkeypatch):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        try:
            setup_stdlib_logging(log_dir=str(tmp_path / "logs"))
            file_handlers = [h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
            assert len(file_handlers) == 1
            assert (tmp_path / "logs").is_dir()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = saved_handlers
            root.setLevel(saved_level)


class TestRequestContext:
    def test_bind_and_clear(self):
        clear_request_context()
        bind_request_context(request_id="req-1", user_id="cust-1")
        assert structlog.contextvars.get_contextvars() == {"request_id": "req-1", "user_id": "cust-1"}
        clear_request_context()
        assert structlog.contextvars.get_contextvars() == {}
