"""
Pytest configuration and fixtures for the migration wizard tests.

Subprocess calls are served by a scripted fake runner so no test touches
systemctl, ssh or rsync.
"""

import uuid
from typing import Callable, Dict, List, Optional

import pytest

from idempiere_migrate.utils.logger import MigrationLogger


def make_result(success: bool = True, stdout: str = '', returncode: Optional[int] = None, error: Optional[str] = None,
                stderr: str = '') -> Dict:
    if returncode is None:
        returncode = 0 if success else 1
    if not success and error is None:
        error = f"Command failed with exit code {returncode}"
    return {
        'success': success,
        'error': None if success else error,
        'duration': 0,
        'returncode': returncode,
        'stdout': stdout,
        'stderr': stderr,
    }


class FakeRunner:
    """Records every call and answers with the first matching scripted rule.

    A rule is (predicate, result) where predicate receives the argv list and
    result is either a result dict or a callable taking the argv.
    """

    def __init__(self):
        self.calls: List[Dict] = []
        self.rules: List = []

    def on(self, predicate: Callable[[List[str]], bool], result):
        self.rules.append((predicate, result))
        return self

    def on_prefix(self, *prefix, result=None):
        prefix = list(prefix)
        return self.on(lambda cmd: cmd[:len(prefix)] == prefix, result or make_result())

    def on_contains(self, text: str, result=None):
        return self.on(lambda cmd: any(text in part for part in cmd), result or make_result())

    def _answer(self, cmd):
        for predicate, result in self.rules:
            if predicate(cmd):
                return result(cmd) if callable(result) else dict(result)
        return make_result()

    def run_command(self, cmd, env=None, cwd=None, timeout=None):
        self.calls.append({'cmd': list(cmd), 'env': env, 'cwd': cwd, 'stream': False})
        return self._answer(cmd)

    def stream_command(self, cmd, env=None, cwd=None, on_line=None):
        self.calls.append({'cmd': list(cmd), 'env': env, 'cwd': cwd, 'stream': True})
        result = self._answer(cmd)
        if on_line:
            for line in result.get('stdout', '').splitlines():
                on_line(line)
        return result

    def commands(self, program: Optional[str] = None) -> List[List[str]]:
        return [call['cmd'] for call in self.calls if program is None or call['cmd'][0] == program]


def remote_command(cmd: List[str]) -> str:
    """The command string handed to the remote shell by an ssh argv."""
    return cmd[-1] if 'ssh' in cmd else ''


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def logger(tmp_path):
    log = MigrationLogger(tmp_path / 'logs' / 'migration.log', name=f'test-{uuid.uuid4().hex}')
    yield log
    log.close()


@pytest.fixture
def read_log(logger):
    def _read():
        for handler in logger.logger.handlers:
            handler.flush()
        return logger.log_file.read_text()
    return _read


class Answers:
    """Scripted answers for prompt callables, consumed in order."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts: List[str] = []

    def __call__(self, prompt, *args, **kwargs):
        self.prompts.append(prompt)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {prompt}")
        return self.answers.pop(0)
