"""Singleton logging configuration.

setup_logging() configures the root logger once per process. Components
never configure handlers themselves; they take an injected
``logging.Logger`` or fall back to ``logging.getLogger(__name__)``.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers to suppress to WARNING
_SUPPRESSED_LOGGERS = (
    "lancedb",
    "pylance",
    "urllib3",
)

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger. Idempotent; a second call is a no-op."""
    global _configured  # noqa: PLW0603
    if _configured:
        return
    _configured = True

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    for name in _SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
