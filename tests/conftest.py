"""Root test configuration."""

import logging

import pytest
import structlog


def _configure_quiet_logging():
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    _configure_quiet_logging()


@pytest.fixture
def restore_logging():
    """Put the quiet test logging back after a test reconfigures it."""
    yield
    _configure_quiet_logging()


class RecordingStore:
    """In-memory secret store that records every lookup."""

    def __init__(self, secrets=None, fail_configure=False):
        self.secrets = dict(secrets or {})
        self.fail_configure = fail_configure
        self.queries = []
        self.configured_with = None

    def configure(self, document):
        if self.fail_configure:
            raise RuntimeError("store unavailable")
        self.configured_with = document

    def get_secret(self, path):
        self.queries.append(path)
        return self.secrets.get(path)


@pytest.fixture
def make_store():
    """Factory for recording secret stores."""
    return RecordingStore
