from __future__ import annotations
import json, sys
from datetime import datetime, timezone
from pathlib import Path

class EventLogger:
    """
    Append-only JSON-lines event log. One line per event:
    {"ts": ..., "level": ..., "msg": "<event_name>", **context}
    """
    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)
        self.log_path = self.log_dir / "rescat.log"

    def _ts(self) -> str:
        return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    def info(self, msg: str, **kv):
        line = {"ts": self._ts(), "level": "INFO", "msg": msg, **kv}
        self._write(line)

    def warn(self, msg: str, **kv):
        line = {"ts": self._ts(), "level": "WARN", "msg": msg, **kv}
        self._write(line)

    def error(self, msg: str, **kv):
        line = {"ts": self._ts(), "level": "ERROR", "msg": msg, **kv}
        self._write(line)

    def _write(self, line: dict):
        txt = json.dumps(line, ensure_ascii=False, default=str)
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as f:
                f.write(txt + "\n")
        except OSError as e:
            # log file unwritable: keep the event on stderr
            print(json.dumps({"ts": self._ts(), "level": "WARN", "msg": "log_write_failed",
                              "error": str(e)}), file=sys.stderr)
            print(txt, file=sys.stderr)
            return
        # Also echo important lines to console
        if line["level"] in {"ERROR", "WARN"}:
            print(txt, file=sys.stderr)


def get_logger(log_dir: Path | None = None) -> EventLogger:
    """Build a logger for `log_dir`, defaulting to RESCAT_LOG_DIR."""
    if log_dir is None:
        from ..config import get_settings
        log_dir = get_settings().log_dir
    return EventLogger(log_dir)
