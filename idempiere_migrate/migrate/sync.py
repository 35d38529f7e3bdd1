"""Mirror the configured data directories from the OLD server."""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from idempiere_migrate.migrate.report import StepOutcome


PROGRESS_RE = re.compile(r'^\s*\S+\s+(\d{1,3})%\s')


class SyncStatus(str, Enum):
    PENDING = 'pending'
    SYNCED = 'synced'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass
class SyncTask:
    local_path: str
    remote_path: str
    status: SyncStatus = SyncStatus.PENDING
    detail: str = ''

    @classmethod
    def for_path(cls, local_path: str) -> 'SyncTask':
        return cls(local_path=local_path, remote_path=local_path)

    def outcome(self) -> StepOutcome:
        name = f"sync {self.local_path}"
        if self.status == SyncStatus.SYNCED:
            return StepOutcome.succeeded(name, self.remote_path)
        if self.status == SyncStatus.FAILED:
            return StepOutcome.failed(name, self.detail)
        return StepOutcome.skipped(name, self.detail or 'not attempted')


def rsync_argv(remote, remote_path: str, local_path: str) -> List[str]:
    """One-way mirror; files missing on the source are deleted locally."""
    return [
        'rsync',
        '-ah',
        '--delete',
        '--info=progress2',
        '-e', remote.rsync_rsh(),
        remote.rsync_source(remote_path),
        f"{local_path.rstrip('/')}/",
    ]


class PathSynchronizer:
    """Pulls each configured path in order; one failed path never stops the rest."""

    def __init__(self, remote, runner, logger, ask: Callable[[str], str], show_progress: bool = True):
        self.remote = remote
        self.runner = runner
        self.logger = logger
        self.ask = ask
        self.show_progress = show_progress

    def resolve_remote_path(self, task: SyncTask) -> bool:
        """
        Confirm the remote directory exists, asking for an alternate if not.

        Returns False (task skipped) for an empty answer or an alternate that
        does not exist either.
        """
        if self.remote.path_exists(task.remote_path):
            return True

        self.logger.warning(f"Remote path not found: {task.remote_path}")
        alternate = self.ask(
            f"Enter alternative remote path to sync to local '{task.local_path}' (leave empty to skip)"
        ).strip()
        if not alternate:
            task.status = SyncStatus.SKIPPED
            task.detail = 'remote path missing, no alternate given'
            self.logger.info(f"Skipping sync for {task.local_path}")
            return False

        task.remote_path = alternate
        if not self.remote.path_exists(alternate):
            task.status = SyncStatus.SKIPPED
            task.detail = f"alternate '{alternate}' does not exist on old server"
            self.logger.warning(f"Provided alternative '{alternate}' does not exist on old server. Skipping.")
            return False

        return True

    def _line_handler(self, pbar: Optional[tqdm], progress: dict):
        def on_line(line: str):
            match = PROGRESS_RE.match(line)
            if match:
                progress['last'] = line.strip()
                if pbar is not None:
                    percent = min(int(match.group(1)), 100)
                    if percent > pbar.n:
                        pbar.update(percent - pbar.n)
                return
            self.logger.output(line)
        return on_line

    def sync_one(self, task: SyncTask) -> SyncTask:
        """Mirror one confirmed remote directory into its local path."""
        self.logger.info(f"Syncing remote:{task.remote_path}  -->  local:{task.local_path}")
        try:
            Path(task.local_path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            task.status = SyncStatus.FAILED
            task.detail = f"cannot create {task.local_path}: {e}"
            self.logger.warning(f"Warning: {task.detail}. Continuing.")
            return task

        cmd = rsync_argv(self.remote, task.remote_path, task.local_path)
        self.logger.info(f"Running: {' '.join(cmd)}")

        progress = {}
        with logging_redirect_tqdm(loggers=[self.logger.logger]), \
                tqdm(total=100, desc=Path(task.local_path).name or task.local_path, unit='%',
                     leave=False, disable=not self.show_progress) as pbar:
            result = self.runner.stream_command(
                cmd, env=self.remote.env(), on_line=self._line_handler(pbar, progress))

        # only the final transfer summary goes to the log
        if progress.get('last'):
            self.logger.output(progress['last'])

        if result['success']:
            task.status = SyncStatus.SYNCED
            task.detail = ''
            self.logger.info(f"rsync for {task.remote_path} finished successfully.")
        else:
            task.status = SyncStatus.FAILED
            task.detail = result['error'] or f"rsync exited with code {result['returncode']}"
            self.logger.warning(
                f"Warning: rsync for {task.remote_path} exited with code {result['returncode']}. Continuing.")
        return task

    def run(self, paths: Iterable[str]) -> List[SyncTask]:
        """Sync every path in the given order and return one task per path."""
        tasks = []
        for local_path in paths:
            task = SyncTask.for_path(local_path)
            tasks.append(task)
            if self.resolve_remote_path(task):
                self.sync_one(task)
        return tasks
