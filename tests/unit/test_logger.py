"""Unit tests for logging helpers.

Version: 1.0.0
"""

from __future__ import annotations

import logging

from restaurant_mail.core.logger import (
    _mask_dsn,
    _mask_secret,
    get_logger,
    get_logs_directory,
    log_context,
    setup_logging,
)


class TestLogContext:
    def test_full_context(self):
        context = log_context("send_attempt", record_id=12, recipient="a@b.com", attempt="2/3")

        assert context == "#12 | send_attempt | →a@b.com (attempt=2/3)"

    def test_operation_only(self):
        assert log_context("queue_sweep") == "queue_sweep"


class TestMasking:
    def test_dsn_password_hidden(self):
        masked = _mask_dsn("postgresql://mail:s3cret@db:5432/restaurant")

        assert masked == "postgresql://mail:***@db:5432/restaurant"

    def test_dsn_without_password_unchanged(self):
        assert _mask_dsn("postgresql://db/restaurant") == "postgresql://db/restaurant"

    def test_secret(self):
        assert _mask_secret("") == "(not set)"
        assert _mask_secret("re_abc") == "r****c"


class TestSetupLogging:
    def test_file_handlers_written_to_log_dir(self, tmp_path):
        setup_logging(log_dir=tmp_path, enable_file=True)
        try:
            get_logger("restaurant_mail.service.test").error("delivery failed")
            for handler in logging.getLogger().handlers:
                handler.flush()

            assert get_logs_directory() == tmp_path
            assert "delivery failed" in (tmp_path / "restaurant_mail.log").read_text()
            assert "delivery failed" in (tmp_path / "restaurant_mail.error.log").read_text()
        finally:
            for handler in logging.getLogger().handlers[:]:
                handler.close()
                logging.getLogger().removeHandler(handler)

    def test_console_only(self, tmp_path):
        setup_logging(log_dir=tmp_path / "logs", enable_file=False)

        assert not (tmp_path / "logs").exists()
        assert len(logging.getLogger().handlers) == 1
