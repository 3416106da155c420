"""
Structured event logging for RPC calls and daemon supervision.

Events go to the standard ``logging`` tree as ``[event] key=value`` lines and,
when a log directory is given, to a JSON-lines file for later analysis.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Optional, Sequence

REDACTED = "[hidden]"


class StructuredLogger:
    """
    Emits named events with keyword context.

    Usage:
        events = StructuredLogger("aria2ctl", log_dir=Path("logs"))
        events.debug("rpc_call_completed", method="aria2.tellActive", duration_ms=4.2)
    """

    def __init__(self, name: str, log_dir: Path | None = None, enable_json: bool = True):
        self.name = name
        self.enable_json = enable_json and log_dir is not None
        self._logger = logging.getLogger(name)
        self._session_id = f"{int(time.time())}_{id(self)}"
        self._json_file: Optional[IO[str]] = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self._json_file = open(  # noqa: SIM115
                log_dir / f"aria2ctl_{stamp}.jsonl", "a", encoding="utf-8"
            )

    def _emit(self, level: int, event: str, **context) -> None:
        if self._logger.isEnabledFor(level):
            line = " ".join([f"[{event}]", *(f"{k}={v}" for k, v in context.items())])
            # Event text may contain brackets; keep rich from parsing it as markup.
            self._logger.log(level, line, extra={"markup": False})
        if self._json_file is None or self._json_file.closed:
            return
        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": logging.getLevelName(level),
            "event": event,
            "session_id": self._session_id,
            **context,
        }
        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, ValueError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def debug(self, event: str, **context) -> None:
        self._emit(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        self._emit(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        self._emit(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        self._emit(logging.ERROR, event, **context)

    def close(self) -> None:
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self) -> "StructuredLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class RpcLogger:
    """Specialized logger for JSON-RPC call events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def call_started(self, method: str, call_id: str, params: Sequence[Any]):
        """Log RPC call started. Secret tokens never reach the log."""
        self.logger.debug(
            "rpc_call_started",
            method=method,
            call_id=call_id,
            params=[
                REDACTED if isinstance(p, str) and p.startswith("token:") else p
                for p in params
            ],
        )

    def call_completed(self, method: str, call_id: str, duration_ms: float):
        """Log RPC call completed."""
        self.logger.debug(
            "rpc_call_completed",
            method=method,
            call_id=call_id,
            duration_ms=round(duration_ms, 2),
        )

    def call_failed(
        self,
        method: str,
        call_id: str,
        reason: str,
        error: str,
        duration_ms: float,
    ):
        """Log RPC call failed. Daemon-reported errors are only warnings."""
        log_fn = self.logger.warning if reason == "protocol_error" else self.logger.error
        log_fn(
            "rpc_call_failed",
            method=method,
            call_id=call_id,
            reason=reason,
            error=error,
            duration_ms=round(duration_ms, 2),
        )


class SupervisorLogger:
    """Specialized logger for daemon process events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def already_running(self, process_name: str):
        self.logger.debug("daemon_already_running", process_name=process_name)

    def launched(self, executable: str, args: Sequence[str], pid: int):
        self.logger.info(
            "daemon_launched", executable=executable, args=list(args), pid=pid
        )

    def window_hidden(self, pid: int, attempts: int):
        self.logger.debug("daemon_window_hidden", pid=pid, attempts=attempts)

    def window_not_found(self, pid: int, attempts: int):
        self.logger.debug("daemon_window_not_found", pid=pid, attempts=attempts)


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, RpcLogger, SupervisorLogger]:
    """
    Create all structured loggers.

    Returns:
        Tuple of (base_logger, rpc_logger, supervisor_logger)
    """
    base = StructuredLogger("aria2ctl", log_dir=log_dir, enable_json=enable_json)
    rpc = RpcLogger(base)
    supervisor = SupervisorLogger(base)

    return base, rpc, supervisor
