"""Ownership and mode fix-up on the application root."""

from pathlib import Path
from typing import List

from idempiere_migrate.migrate.report import StepOutcome


def fix_permissions(root: Path, owner: str, mode: str, runner, logger) -> StepOutcome:
    """``chown -R`` then ``chmod`` the root directory. Failures are warnings only."""
    logger.info(f"Fixing ownership and permissions under {root}")
    problems: List[str] = []

    for cmd in (['chown', '-R', owner, str(root)], ['chmod', mode, str(root)]):
        result = runner.run_command(cmd)
        if not result['success']:
            problems.append(f"{cmd[0]}: {result['error']}")
            logger.warning(f"Warning: {' '.join(cmd)} failed: {result['error']}")

    if problems:
        return StepOutcome.failed('permissions', '; '.join(problems))
    return StepOutcome.succeeded('permissions', f"{owner} {mode} {root}")
