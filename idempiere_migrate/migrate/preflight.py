"""Checks that must pass before anything on the new server is touched."""

import os
import shlex

from idempiere_migrate.migrate.report import MigrationError, StepOutcome


def require_root():
    if os.geteuid() != 0:
        raise MigrationError("Please run as root (sudo).")


def check_connectivity(remote, logger) -> StepOutcome:
    """Run a trivial remote command; fatal if it does not succeed."""
    logger.info(f"Checking SSH connectivity to {remote.target} ...")
    result = remote.run('echo connected')
    if not result['success'] or 'connected' not in result['stdout']:
        detail = result['error'] or 'unexpected output'
        raise MigrationError(f"Cannot SSH to {remote.target}. Check IP/user/auth. ({detail})")
    logger.info("OK.")
    return StepOutcome.succeeded('ssh connectivity', remote.target)


def verify_export_file(remote, export_file: str, utils_dir, logger, confirm) -> StepOutcome:
    """
    Make sure the database export is waiting on the OLD server.

    A missing export can be overridden by the operator; declining is fatal.
    When present, its size and modification time are logged for a sanity
    check.
    """
    logger.info(f"Verifying DB export on OLD server: {export_file}")

    if not remote.path_exists(export_file, kind='f'):
        logger.warning(f"It looks like {export_file} does not exist on the OLD server.")
        logger.info(f"Run the export on the old server first: cd {utils_dir} && ./RUN_DBExport.sh")
        if not confirm("Continue anyway?", default=False):
            raise MigrationError("Please run the export on old server and re-run this wizard.")
        logger.warning("Continuing without a verified DB export")
        return StepOutcome.skipped('export file', f"{export_file} missing, operator continued")

    quoted = shlex.quote(export_file)
    details = remote.run(f"ls -lh --time-style=long-iso {quoted} || stat {quoted}")
    logger.command_output(details)
    return StepOutcome.succeeded('export file', export_file)
