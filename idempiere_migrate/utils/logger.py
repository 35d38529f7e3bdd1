"""Run log mirrored to the console."""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def run_timestamp(now: Optional[datetime] = None) -> str:
    """Timestamp used for the log name and the hosts backup."""
    return (now or datetime.now()).strftime('%Y-%m-%d_%H-%M-%S')


def log_file_path(log_dir: Path, timestamp: str) -> Path:
    return Path(log_dir) / f'idempiere_migration_{timestamp}.log'


class _BelowWarning(logging.Filter):
    def filter(self, record):
        return record.levelno < logging.WARNING


class MigrationLogger:
    """Dual logging to console and file.

    Informational lines go to stdout, warnings and errors to stderr, and
    every line is appended to the run log.
    """

    def __init__(self, log_file: Path, name: str = 'idempiere_migrate'):
        self.log_file = Path(log_file)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        self.log_file.touch(exist_ok=True)
        os.chmod(self.log_file, 0o644)

        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        file_handler = logging.FileHandler(self.log_file)
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)

        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setLevel(logging.INFO)
        stdout_handler.addFilter(_BelowWarning())
        stdout_handler.setFormatter(formatter)

        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(logging.WARNING)
        stderr_handler.setFormatter(formatter)

        self.logger.addHandler(file_handler)
        self.logger.addHandler(stdout_handler)
        self.logger.addHandler(stderr_handler)

    def info(self, message: str):
        self.logger.info(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def error(self, message: str, exc_info=None):
        if exc_info:
            self.logger.error(message, exc_info=exc_info)
        else:
            self.logger.error(message)

    def output(self, line: str):
        """Record one line of subprocess output."""
        self.logger.info(f"  | {line}")

    def command_output(self, result: dict):
        """Record the captured stdout and stderr of a finished command."""
        for stream in ('stdout', 'stderr'):
            for line in (result.get(stream) or '').splitlines():
                if line.strip():
                    self.output(line)

    def section(self, title: str):
        separator = "=" * 80
        self.info("")
        self.info(separator)
        self.info(f"  {title}")
        self.info(separator)

    def close(self):
        for handler in list(self.logger.handlers):
            handler.flush()
            self.logger.removeHandler(handler)
            handler.close()
