#!/usr/bin/env python3
"""
iDempiere Migration Wizard

Pulls an iDempiere installation from the OLD server onto this (NEW) server:
hostname update, data directory mirroring over SSH, database restore and
service restart.
"""

import socket
import sys
import time
from argparse import ArgumentParser

from idempiere_migrate.migrate.hostname import update_hostname
from idempiere_migrate.migrate.permissions import fix_permissions
from idempiere_migrate.migrate.preflight import check_connectivity, require_root, verify_export_file
from idempiere_migrate.migrate.remote import negotiate_connection
from idempiere_migrate.migrate.report import MigrationError, RunReport, StepOutcome
from idempiere_migrate.migrate.restore import run_restore_scripts
from idempiere_migrate.migrate.service import ServiceController
from idempiere_migrate.migrate.sync import PathSynchronizer
from idempiere_migrate.utils import prompts
from idempiere_migrate.utils.config import MigrationSettings, collect_config
from idempiere_migrate.utils.lock import RunLock
from idempiere_migrate.utils.logger import MigrationLogger, log_file_path, run_timestamp
from idempiere_migrate.utils.subprocess_utils import SubprocessRunner


class MigrationWizard:
    """Main migration orchestrator. Steps run strictly forward, once each."""

    def __init__(self, settings: MigrationSettings, runner, logger, timestamp: str,
                 ask=prompts.ask_question,
                 ask_optional=prompts.ask_optional,
                 ask_yes_no=prompts.ask_yes_no,
                 ask_secret=prompts.ask_secret,
                 sleep=time.sleep,
                 show_progress: bool = True):
        self.settings = settings
        self.runner = runner
        self.logger = logger
        self.timestamp = timestamp
        self.ask = ask
        self.ask_optional = ask_optional
        self.ask_yes_no = ask_yes_no
        self.ask_secret = ask_secret
        self.sleep = sleep
        self.show_progress = show_progress

    def run(self, report: RunReport, skip_hostname: bool = False) -> RunReport:
        settings = self.settings
        logger = self.logger

        config = collect_config(
            settings,
            ask=self.ask,
            ask_yes_no=self.ask_yes_no,
            skip_hostname=skip_hostname,
            current_hostname=socket.gethostname(),
        )
        logger.info("Configuration:")
        logger.info(f"  Remote: {config.remote_user}@{config.remote_host}:{settings.ssh_port}")
        logger.info(f"  Auth mode: {config.auth_mode}")
        logger.info(f"  DB export: {config.export_file}")
        logger.info(f"  Service: {settings.service_name}")

        logger.section("Hostname Update")
        if skip_hostname:
            report.add(StepOutcome.skipped('hostname', 'disabled with --skip-hostname'))
            logger.info("Hostname update skipped")
        else:
            report.add(update_hostname(config, settings, self.runner, logger, self.timestamp))

        logger.section("Remote Connection")
        remote = negotiate_connection(config, settings, self.runner, logger, self.ask_secret)
        try:
            report.add(check_connectivity(remote, logger))
            report.add(verify_export_file(remote, config.export_file, settings.utils_dir, logger, self.ask_yes_no))

            logger.section("Stopping Service")
            service = ServiceController(settings.service_name, self.runner, logger, sleep=self.sleep)
            report.add(service.stop())

            logger.section("Syncing Paths")
            logger.info("For any missing remote path you'll be prompted to provide an alternate or skip.")
            synchronizer = PathSynchronizer(remote, self.runner, logger, self.ask_optional,
                                            show_progress=self.show_progress)
            report.sync_tasks = synchronizer.run(config.sync_paths)
        finally:
            remote.close()

        logger.section("Fixing Permissions")
        report.add(fix_permissions(settings.app_root, settings.app_owner, settings.app_root_mode,
                                   self.runner, logger))

        logger.section("Restoring Database")
        report.extend(run_restore_scripts(settings.utils_dir, settings.restore_scripts, self.runner, logger))

        logger.section("Starting Service")
        report.add(service.start(
            delay=settings.service_start_delay,
            journal_lines=settings.journal_lines,
            failure_policy=settings.service_start_failure,
        ))

        if report.has_warnings:
            logger.warning(f"Migration finished with warnings. Please inspect {report.log_file}")
        else:
            logger.info("Migration complete.")
        return report


def main(argv=None):
    """Main migration program."""
    parser = ArgumentParser(description='iDempiere migration wizard (pull from OLD -> NEW)')
    parser.add_argument('env_file', nargs='?', help='Path to .env file with site defaults (default: .env if present)')
    parser.add_argument('--skip-hostname', action='store_true',
                        help='Keep the current hostname and /etc/hosts untouched')
    args = parser.parse_args(argv)

    try:
        settings = MigrationSettings(args.env_file)
        require_root()
    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except MigrationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    timestamp = run_timestamp()
    log_file = log_file_path(settings.log_dir, timestamp)
    try:
        logger = MigrationLogger(log_file)
    except OSError as e:
        print(f"ERROR: Cannot open log file {log_file}: {e}", file=sys.stderr)
        return 1
    report = RunReport(log_file=str(log_file))

    logger.section("iDempiere Migration Wizard (pull from OLD -> NEW) + Hostname update")
    logger.info(f"Log: {log_file}")

    exit_code = 0
    try:
        with RunLock(settings.lock_file, log_file):
            wizard = MigrationWizard(settings, SubprocessRunner(), logger, timestamp)
            wizard.run(report, skip_hostname=args.skip_hostname)
    except RuntimeError as e:
        report.fatal_error = str(e)
        logger.error(f"ERROR: {e}")
        exit_code = 1
    except KeyboardInterrupt:
        report.fatal_error = 'interrupted by user'
        logger.warning("Migration interrupted by user")
        exit_code = 1
    except Exception as e:
        report.fatal_error = f"unexpected error: {e}"
        logger.error(f"Unexpected error: {e}", exc_info=True)
        exit_code = 1
    finally:
        report.write(logger)
        logger.close()

    return exit_code


if __name__ == '__main__':
    sys.exit(main())
