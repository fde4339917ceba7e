"""
Shelf Sync Logging System

Clean terminal output for key sync events + JSON-lines storage logs for debugging.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Any, Dict
import json


class ShelfSyncLogger:
    """
    Two-mode logging system:
    - Terminal: Clean, timestamped key events only
    - Debug file: Full detailed logs for troubleshooting
    """

    def __init__(self, debug_mode: bool = False, settings=None):
        self.debug_mode = debug_mode
        self.settings = settings

        # Structured storage log, one JSON object per Firestore call
        if settings and settings.debug_storage:
            self.debug_log_dir = Path(settings.debug_log_dir)
            self.debug_log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.storage_log = self.debug_log_dir / f"storage_{timestamp}.jsonl"

        self.file_logger = logging.getLogger("shelfsync_debug")
        if debug_mode:
            self.file_logger.setLevel(logging.DEBUG)

    def _timestamp(self) -> str:
        """Get formatted timestamp"""
        return datetime.now().strftime("%H:%M:%S")

    def _terminal_log(self, emoji: str, message: str, color: str = ""):
        """Print clean log to terminal"""
        timestamp = self._timestamp()

        # ANSI color codes
        colors = {
            "green": "\033[92m",
            "blue": "\033[94m",
            "yellow": "\033[93m",
            "red": "\033[91m",
            "cyan": "\033[96m",
            "reset": "\033[0m"
        }

        color_code = colors.get(color, "")
        reset = colors["reset"] if color_code else ""

        print(f"{color_code}[{timestamp}] {emoji} {message}{reset}")

    def _debug_log(self, level: str, component: str, message: str, data: Optional[dict] = None):
        """Write detailed log to the debug logger"""
        if self.debug_mode:
            log_msg = f"{component} | {message}"
            if data:
                log_msg += f" | Data: {data}"

            log_func = getattr(self.file_logger, level.lower(), self.file_logger.info)
            log_func(log_msg)

    # ===== Terminal Output Methods =====

    def sync_started(self, operation: str, principal_id: str):
        """Log when a multi-document sync starts"""
        self._terminal_log("🔄", f"Sync started: {operation} (User: {principal_id[:8]})", "cyan")
        self._debug_log("info", "SYNC", f"Started {operation}", {"principal_id": principal_id})

    def sync_completed(self, operation: str, principal_id: str, duration: Optional[float] = None):
        """Log when a multi-document sync completes"""
        msg = f"Sync completed: {operation} (User: {principal_id[:8]})"
        if duration:
            msg += f" in {duration:.1f}s"
        self._terminal_log("✅", msg, "green")
        self._debug_log("info", "SYNC", f"Completed {operation}", {
            "principal_id": principal_id,
            "duration": duration
        })

    def sync_failed(self, operation: str, principal_id: str, error: str):
        """Log when a multi-document sync fails"""
        self._terminal_log("❌", f"Sync failed: {operation} (User: {principal_id[:8]}) - {error}", "red")
        self._debug_log("error", "SYNC", f"Failed {operation}", {
            "principal_id": principal_id,
            "error": error
        })

    def sync_skipped(self, operation: str, principal_id: str):
        """Log when a save is skipped because another one is in flight"""
        self._terminal_log("⏭️", f"Sync skipped: {operation} already in progress (User: {principal_id[:8]})", "yellow")
        self._debug_log("info", "SYNC", f"Skipped {operation}", {"principal_id": principal_id})

    def backup_created(self, principal_id: str, backup_id: str):
        """Log a new backup snapshot"""
        self._terminal_log("🗄️", f"Backup created: {backup_id} (User: {principal_id[:8]})", "blue")
        self._debug_log("info", "BACKUP", "Created", {
            "principal_id": principal_id,
            "backup_id": backup_id
        })

    def session_changed(self, principal_id: Optional[str]):
        """Log sign-in / sign-out"""
        if principal_id:
            self._terminal_log("👤", f"Signed in: {principal_id[:8]}", "cyan")
        else:
            self._terminal_log("👋", "Signed out", "cyan")
        self._debug_log("info", "SESSION", "Changed", {"principal_id": principal_id})

    def error(self, component: str, message: str, error: Exception = None):
        """Log error"""
        msg = f"Error in {component}: {message}"
        if error:
            msg += f" ({type(error).__name__})"
        self._terminal_log("⚠️", msg, "red")
        self._debug_log("error", component, message, {
            "error_type": type(error).__name__ if error else None,
            "error_message": str(error) if error else None
        })

    def info(self, message: str):
        """Log general info"""
        self._terminal_log("ℹ️", message)
        self._debug_log("info", "SYSTEM", message)

    def warning(self, message: str):
        """Log warning"""
        self._terminal_log("⚠️", message, "yellow")
        self._debug_log("warning", "SYSTEM", message)

    def debug(self, component: str, message: str, data: Optional[dict] = None):
        """Log debug information (file only)"""
        if self.debug_mode:
            self._debug_log("debug", component, message, data)

    # ===== Storage Debug Logging =====

    def _write_json_log(self, log_file: Path, data: Dict[str, Any]):
        """Write structured JSON log entry"""
        try:
            with open(log_file, 'a') as f:
                json.dump(data, f, default=str)
                f.write('\n')
        except OSError as e:
            self.error("LOGGER", f"Failed to write JSON log: {e}")

    def storage_operation(self, operation: str, path: str, data_summary: str,
                          size_bytes: int = 0, duration: Optional[float] = None):
        """Log Firestore write/update/append operations"""
        # Skip if debug flag not enabled
        if not self.settings or not self.settings.debug_storage:
            return

        timestamp = datetime.now().isoformat()

        # Terminal output
        duration_str = f" in {duration*1000:.0f}ms" if duration else ""
        msg = f"Storage {operation.upper()} → {path} ({size_bytes} bytes){duration_str}"
        self._terminal_log("💾", msg, "yellow")

        # Structured JSON log
        log_data = {
            "timestamp": timestamp,
            "type": "storage_operation",
            "operation": operation,
            "path": path,
            "data_summary": data_summary,
            "size_bytes": size_bytes,
            "duration_seconds": duration
        }

        if hasattr(self, 'storage_log'):
            self._write_json_log(self.storage_log, log_data)

    def storage_read(self, path: str, result_summary: str, size_bytes: int = 0,
                     duration: Optional[float] = None):
        """Log Firestore read operations"""
        # Skip if debug flag not enabled
        if not self.settings or not self.settings.debug_storage:
            return

        timestamp = datetime.now().isoformat()

        # Terminal output
        duration_str = f" in {duration*1000:.0f}ms" if duration else ""
        msg = f"Storage READ ← {path} ({size_bytes} bytes){duration_str}"
        self._terminal_log("📖", msg, "blue")

        # Structured JSON log
        log_data = {
            "timestamp": timestamp,
            "type": "storage_read",
            "path": path,
            "result_summary": result_summary,
            "size_bytes": size_bytes,
            "duration_seconds": duration
        }

        if hasattr(self, 'storage_log'):
            self._write_json_log(self.storage_log, log_data)


# Global logger instance
_logger: Optional[ShelfSyncLogger] = None


def get_logger(settings=None) -> ShelfSyncLogger:
    """Get global logger instance"""
    global _logger
    if _logger is None:
        if settings is None:
            from shelfsync.config import get_settings
            settings = get_settings()
        _logger = ShelfSyncLogger(debug_mode=settings.debug_mode, settings=settings)
    return _logger


def init_logger(debug_mode: Optional[bool] = None, settings=None):
    """Initialize logger with specific debug mode and settings (debug mode defaults to settings)"""
    global _logger
    if debug_mode is None:
        debug_mode = bool(settings and settings.debug_mode)
    _logger = ShelfSyncLogger(debug_mode=debug_mode, settings=settings)
    return _logger
