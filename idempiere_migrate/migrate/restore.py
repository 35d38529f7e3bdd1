"""Database restore and sync through the local iDempiere utility scripts."""

from pathlib import Path
from typing import Iterable, List

from idempiere_migrate.migrate.report import MigrationError, StepOutcome


def run_restore_scripts(utils_dir: Path, scripts: Iterable[str], runner, logger) -> List[StepOutcome]:
    """
    Run each delegate script from ``utils_dir`` in order.

    A missing utils directory is fatal before any script runs. A script that
    exits non-zero, or cannot be started, is logged as a warning and the next
    one still runs.
    """
    utils_dir = Path(utils_dir)
    if not utils_dir.is_dir():
        raise MigrationError(f"Utils directory not found: {utils_dir}")

    outcomes = []
    for script in scripts:
        logger.info(f"Running {script} (logged). Errors will not abort migration.")
        result = runner.stream_command([f'./{script}'], cwd=utils_dir, on_line=logger.output)

        if result['success']:
            logger.info(f"{script} finished successfully.")
            outcomes.append(StepOutcome.succeeded(script))
        else:
            logger.warning(f"Warning: {script} failed ({result['error']}) - continuing.")
            outcomes.append(StepOutcome.failed(script, result['error']))

    return outcomes
