"""systemd control of the local iDempiere service."""

import time

from idempiere_migrate.migrate.report import MigrationError, StepOutcome


class ServiceController:
    """Stop, start and inspect one systemd unit."""

    def __init__(self, name: str, runner, logger, sleep=time.sleep):
        self.name = name
        self.runner = runner
        self.logger = logger
        self._sleep = sleep

    def is_active(self) -> bool:
        result = self.runner.run_command(['systemctl', 'is-active', '--quiet', self.name])
        return result['success']

    def stop(self) -> StepOutcome:
        """Stop the service. Fatal if it is still active afterwards."""
        self.logger.info(f"Stopping local service: {self.name}")
        result = self.runner.run_command(['systemctl', 'stop', self.name])
        if not result['success']:
            self.logger.warning(f"systemctl stop {self.name} reported: {result['error']}")

        if self.is_active():
            raise MigrationError(f"Service {self.name} still active; stop it and retry.")

        self.logger.info("Stopped.")
        return StepOutcome.succeeded('stop service', self.name)

    def journal_tail(self, lines: int) -> str:
        result = self.runner.run_command(
            ['journalctl', '-u', self.name, '-n', str(lines), '--no-pager'])
        return result['stdout'] or result['error'] or ''

    def start(self, delay: int = 2, journal_lines: int = 200, failure_policy: str = 'warn') -> StepOutcome:
        """
        Start the service and check it came up.

        When it is not active after ``delay`` seconds the last journal lines
        are written to the log; ``failure_policy`` decides whether that ends
        the run ('fatal') or is reported as a failed step ('warn').
        """
        self.logger.info(f"Starting service: {self.name}")
        result = self.runner.run_command(['systemctl', 'start', self.name])
        if not result['success']:
            self.logger.warning(f"systemctl start {self.name} reported: {result['error']}")

        if delay:
            self._sleep(delay)

        if self.is_active():
            self.logger.info(f"{self.name} is active.")
            return StepOutcome.succeeded('start service', self.name)

        self.logger.warning(f"Service {self.name} not active. Last journal lines:")
        for line in self.journal_tail(journal_lines).splitlines():
            self.logger.output(line)

        message = f"Service {self.name} did not become active"
        if failure_policy == 'fatal':
            raise MigrationError(message)
        self.logger.warning(f"{message}; inspect the journal output above.")
        return StepOutcome.failed('start service', message)
