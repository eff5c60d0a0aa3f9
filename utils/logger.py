import logging
import sys
from pathlib import Path
from typing import Optional


class DebUpgradeLogger:
    def __init__(self, log_level: Optional[str] = None, log_file: Optional[str] = None):
        self.logger = logging.getLogger("debupgrade")
        if log_level is not None:
            self.logger.setLevel(getattr(logging, log_level.upper()))
        elif self.logger.level == logging.NOTSET:
            self.logger.setLevel(logging.INFO)

        if not self.logger.handlers:
            self._setup_handlers(log_file)
        elif log_file:
            self._add_file_handler(log_file)

    def _formatter(self) -> logging.Formatter:
        return logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    def _setup_handlers(self, log_file: Optional[str]):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(self._formatter())
        self.logger.addHandler(console_handler)

        if log_file:
            self._add_file_handler(log_file)

    def _add_file_handler(self, log_file: str):
        log_path = Path(log_file)
        for handler in self.logger.handlers:
            if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path.resolve():
                return
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(self._formatter())
        self.logger.addHandler(file_handler)

    def info(self, message: str):
        self.logger.info(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def error(self, message: str):
        self.logger.error(message)

    def debug(self, message: str):
        self.logger.debug(message)

    def log_run_start(self, system_name: str, hostname: str):
        self.info(f"Starting Debian upgrade on {system_name} ({hostname})")

    def log_run_complete(self, system_name: str, duration: float):
        self.info(f"Completed Debian upgrade on {system_name} in {duration:.2f}s")

    def log_step_start(self, step: str):
        self.info(f"Starting step: {step}")

    def log_step_complete(self, step: str, success: bool, status: str = ""):
        suffix = f" ({status})" if status else ""
        if success:
            self.info(f"Step completed: {step}{suffix}")
        else:
            self.error(f"Step failed: {step}{suffix}")

    def log_command_start(self, command: str):
        self.debug(f"Executing command: {command}")

    def log_command_complete(self, command: str, exit_code: int, duration: float):
        if exit_code == 0:
            self.debug(f"Command completed successfully: {command} ({duration:.2f}s)")
        else:
            self.error(f"Command failed with exit code {exit_code}: {command} ({duration:.2f}s)")


def get_logger(log_level: Optional[str] = None, log_file: Optional[str] = None) -> DebUpgradeLogger:
    """Get a configured logger instance"""
    return DebUpgradeLogger(log_level, log_file)
