"""Remote connection to the OLD server over SSH.

Every remote call is an argv list. In password mode the helper runs as
``sshpass -e`` and reads the password from the ``SSHPASS`` variable of the
child environment only, so it never appears in argv, in a shell string or
in the run log.
"""

import os
import shlex
import shutil
from typing import Dict, List, Optional

from idempiere_migrate.migrate.report import MigrationError


SSHPASS = 'sshpass'


class Secret:
    """Password held in a mutable buffer that can be zeroed after use."""

    def __init__(self, value: str):
        self._buffer = bytearray(value.encode('utf-8'))

    def reveal(self) -> str:
        return self._buffer.decode('utf-8')

    def wipe(self):
        for i in range(len(self._buffer)):
            self._buffer[i] = 0
        self._buffer = bytearray()

    def __bool__(self):
        return len(self._buffer) > 0

    def __repr__(self):
        return 'Secret(********)'

    __str__ = __repr__


def _install_commands() -> Optional[List[List[str]]]:
    if shutil.which('apt-get'):
        return [['apt-get', 'update', '-y'], ['apt-get', 'install', '-y', SSHPASS]]
    for manager in ('dnf', 'yum'):
        if shutil.which(manager):
            return [[manager, 'install', '-y', SSHPASS]]
    return None


def ensure_sshpass(runner, logger) -> str:
    """Return the sshpass binary path, installing it through the package manager if needed."""
    found = shutil.which(SSHPASS)
    if found:
        return found

    commands = _install_commands()
    if not commands:
        raise MigrationError(
            f"{SSHPASS} not found and no supported package manager available. "
            f"Install {SSHPASS} or use SSH key auth.")

    logger.info(f"{SSHPASS} not found. Installing {SSHPASS} via {commands[0][0]}...")
    env = dict(os.environ, DEBIAN_FRONTEND='noninteractive')
    for cmd in commands:
        result = runner.run_command(cmd, env=env)
        logger.command_output(result)
        if not result['success']:
            raise MigrationError(f"{SSHPASS} installation failed: {result['error']}")

    found = shutil.which(SSHPASS)
    if not found:
        raise MigrationError(f"{SSHPASS} installation failed. Please install {SSHPASS} or use SSH key auth.")
    return found


class RemoteConnection:
    """Command prefixes for remote shell and rsync transport, built from the same options."""

    def __init__(self, host: str, user: str, port: int = 22,
                 password: Optional[Secret] = None,
                 strict_host_key: bool = False,
                 timeout: Optional[int] = None,
                 runner=None):
        self.host = host
        self.user = user
        self.port = port
        self.password = password
        self.strict_host_key = strict_host_key
        self.timeout = timeout
        self.runner = runner

    @property
    def target(self) -> str:
        return f"{self.user}@{self.host}"

    @property
    def uses_password(self) -> bool:
        return bool(self.password)

    def ssh_options(self) -> List[str]:
        options = []
        if not self.strict_host_key:
            options += ['-o', 'StrictHostKeyChecking=no', '-o', 'UserKnownHostsFile=/dev/null']
        if self.port and self.port != 22:
            options += ['-p', str(self.port)]
        return options

    def _prefix(self) -> List[str]:
        prefix = [SSHPASS, '-e'] if self.uses_password else []
        return prefix + ['ssh'] + self.ssh_options()

    def ssh_argv(self, command: str) -> List[str]:
        """Argv running ``command`` in the remote user's shell."""
        return self._prefix() + [self.target, command]

    def rsync_rsh(self) -> str:
        """Value for ``rsync -e``; carries no credential."""
        return ' '.join(shlex.quote(part) for part in self._prefix())

    def rsync_source(self, remote_path: str) -> str:
        return f"{self.target}:{remote_path.rstrip('/')}/"

    def env(self) -> Optional[Dict[str, str]]:
        """Child environment; None inherits ours unchanged."""
        if not self.uses_password:
            return None
        return dict(os.environ, SSHPASS=self.password.reveal())

    def run(self, command: str, timeout: Optional[int] = None):
        timeout = timeout if timeout is not None else self.timeout
        return self.runner.run_command(self.ssh_argv(command), env=self.env(), timeout=timeout)

    def path_exists(self, path: str, kind: str = 'd') -> bool:
        """``test -d`` (or ``-f``) on the remote host."""
        return self.run(f"test -{kind} {shlex.quote(path)}")['success']

    def close(self):
        if self.password:
            self.password.wipe()


def negotiate_connection(config, settings, runner, logger, ask_secret) -> RemoteConnection:
    """Build the connection for the chosen auth mode, prompting for a password if needed."""
    password = None
    if config.uses_password:
        ensure_sshpass(runner, logger)
        password = Secret(ask_secret("Old server SSH password"))
        logger.info("Using password authentication via sshpass")
    else:
        logger.info("Using SSH key authentication")

    return RemoteConnection(
        config.remote_host,
        config.remote_user,
        port=settings.ssh_port,
        password=password,
        strict_host_key=settings.ssh_strict_host_key,
        timeout=settings.ssh_timeout,
        runner=runner,
    )
