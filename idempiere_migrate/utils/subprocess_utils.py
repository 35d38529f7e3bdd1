"""Common subprocess utilities shared by every migration step."""

import subprocess
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union


CommandResult = Dict[str, Union[bool, str, float, int, None]]


def _empty_result() -> CommandResult:
    return {
        'success': False,
        'error': None,
        'duration': 0,
        'returncode': -1,
        'stdout': '',
        'stderr': ''
    }


class SubprocessRunner:
    """Argv-only subprocess execution with consistent error handling.

    Commands are never handed to a shell. Failures are reported in the
    returned dict instead of being raised, so callers decide whether a
    non-zero exit is fatal or only worth a warning.
    """

    def __init__(self, timeout: Optional[int] = None):
        self.timeout = timeout

    def run_command(self,
                   cmd: List[str],
                   env: Optional[Dict[str, str]] = None,
                   cwd: Optional[Union[str, Path]] = None,
                   timeout: Optional[int] = None) -> CommandResult:
        """
        Execute command and capture its output.

        Returns dict with keys: success, error, duration, returncode, stdout, stderr
        """
        timeout = timeout if timeout is not None else self.timeout
        result = _empty_result()
        start = time.time()

        try:
            process = subprocess.run(
                cmd,
                env=env,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout
            )
            result['returncode'] = process.returncode
            result['stdout'] = process.stdout
            result['stderr'] = process.stderr
            result['duration'] = time.time() - start

            if process.returncode == 0:
                result['success'] = True
            else:
                result['error'] = f"Command failed with exit code {process.returncode}"
                if process.stderr:
                    result['error'] += f"\nSTDERR: {process.stderr.strip()}"

        except subprocess.TimeoutExpired as e:
            result['duration'] = time.time() - start
            result['error'] = f"Command timed out after {timeout} seconds"
            if e.stdout:
                result['stdout'] = e.stdout.decode('utf-8', errors='replace') if isinstance(e.stdout, bytes) else str(e.stdout)
            if e.stderr:
                result['stderr'] = e.stderr.decode('utf-8', errors='replace') if isinstance(e.stderr, bytes) else str(e.stderr)
        except FileNotFoundError:
            result['error'] = f"Command not found: {cmd[0] if cmd else 'unknown'}"
        except PermissionError:
            result['error'] = f"Permission denied: {cmd[0] if cmd else 'unknown'}"

        return result

    def stream_command(self,
                       cmd: List[str],
                       env: Optional[Dict[str, str]] = None,
                       cwd: Optional[Union[str, Path]] = None,
                       on_line: Optional[Callable[[str], None]] = None) -> CommandResult:
        """
        Execute command with stdout and stderr merged, handing every output
        line to ``on_line`` as it arrives.

        Carriage-return progress updates (rsync --info=progress2) arrive as
        separate lines. The returned dict has the same keys as run_command;
        ``stdout`` holds the full merged output.
        """
        result = _empty_result()
        start = time.time()
        captured = []

        try:
            process = subprocess.Popen(
                cmd,
                env=env,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors='replace'
            )
        except FileNotFoundError:
            result['error'] = f"Command not found: {cmd[0] if cmd else 'unknown'}"
            return result
        except PermissionError:
            result['error'] = f"Permission denied: {cmd[0] if cmd else 'unknown'}"
            return result

        with process:
            for line in process.stdout:
                line = line.rstrip('\n')
                captured.append(line)
                if on_line and line.strip():
                    on_line(line)
            process.wait()

        result['returncode'] = process.returncode
        result['stdout'] = '\n'.join(captured)
        result['duration'] = time.time() - start
        if process.returncode == 0:
            result['success'] = True
        else:
            result['error'] = f"Command failed with exit code {process.returncode}"

        return result
