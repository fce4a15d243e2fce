"""Structured JSON logger for explanation requests and errors."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from docinterp.constants import ERROR_TRUNCATION_CHARS
from docinterp.logging_config import LOG_DATEFMT, LOG_FORMAT

__all__ = ["RequestLogger", "LOG_FORMAT", "LOG_DATEFMT"]


class RequestLogger:
    """JSON-lines audit log with request_id correlation."""

    def __init__(self, log_dir: Path, level: str = "INFO") -> None:
        self._log_dir = log_dir
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._path = log_dir / "requests.log"
        self._logger = logging.getLogger(f"docinterp.requests.{log_dir}")
        self._logger.setLevel(getattr(logging, level.upper()))
        self._logger.propagate = False

        if not self._logger.handlers:
            handler = logging.FileHandler(self._path)
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)

    @property
    def path(self) -> Path:
        return self._path

    def log_request(
        self,
        request_id: str,
        file_name: str,
        selected_chars: int,
        outcome: str,
        citations: list[str],
        confidence: float,
        duration_ms: float,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "request",
                "timestamp": datetime.now(UTC).isoformat(),
                "request_id": request_id,
                "file_name": file_name,
                "selected_chars": selected_chars,
                "outcome": outcome,
                "citations": citations,
                "confidence": confidence,
                "duration_ms": duration_ms,
            })
        )

    def log_error(
        self,
        request_id: str,
        component: str,
        error: str,
    ) -> None:
        self._logger.error(
            json.dumps({
                "type": "error",
                "timestamp": datetime.now(UTC).isoformat(),
                "request_id": request_id,
                "component": component,
                "error": error[:ERROR_TRUNCATION_CHARS],
            })
        )

    def log_stage(
        self,
        request_id: str,
        stage_name: str,
        status: str,
        duration_ms: float,
        error: str | None = None,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "stage",
                "timestamp": datetime.now(UTC).isoformat(),
                "request_id": request_id,
                "stage": stage_name,
                "status": status,
                "duration_ms": duration_ms,
                "error": error,
            })
        )

    def close(self) -> None:
        for handler in list(self._logger.handlers):
            handler.close()
            self._logger.removeHandler(handler)
