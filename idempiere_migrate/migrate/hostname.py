"""Hostname and hosts-file update for the new server."""

import os
import re
import shutil
import socket
import tempfile
from pathlib import Path
from typing import List, Optional

from idempiere_migrate.migrate.report import MigrationError, StepOutcome


FALLBACK_IP = '127.0.1.1'
LOOPBACK_IP = '127.0.0.1'
LOCALHOST_LINE = f'{LOOPBACK_IP} localhost'
LOCALHOST_RE = re.compile(r'127\.0\.0\.1\s.*localhost')
ROUTE_PROBE_TARGET = '1.1.1.1'


def backup_hosts_file(hosts_file: Path, timestamp: str) -> Path:
    """Copy the hosts file to ``<name>.bak.<timestamp>``; never overwrite an existing backup."""
    hosts_file = Path(hosts_file)
    backup = hosts_file.with_name(f'{hosts_file.name}.bak.{timestamp}')
    counter = 1
    while backup.exists():
        backup = hosts_file.with_name(f'{hosts_file.name}.bak.{timestamp}.{counter}')
        counter += 1
    shutil.copy2(hosts_file, backup)
    os.chmod(backup, 0o644)
    return backup


def detect_primary_ip(runner) -> Optional[str]:
    """
    Best-effort primary outbound IPv4.

    Asks the routing table which source address would reach a public IP,
    falls back to the first address from ``hostname -I``, else None.
    """
    route = runner.run_command(['ip', 'route', 'get', ROUTE_PROBE_TARGET])
    if route['success']:
        tokens = route['stdout'].split()
        for i, token in enumerate(tokens[:-1]):
            if token == 'src':
                return tokens[i + 1]

    addresses = runner.run_command(['hostname', '-I'])
    if addresses['success']:
        tokens = addresses['stdout'].split()
        if tokens:
            return tokens[0]

    return None


def _host_tokens(line: str) -> List[str]:
    return line.split('#', 1)[0].split()


def _references(line: str, name: str, match: str) -> bool:
    if not name:
        return False
    if match == 'substring':
        return name in line
    # hostnames are case-insensitive
    return name.lower() in [token.lower() for token in _host_tokens(line)]


def mapping_ip(primary_ip: Optional[str]) -> str:
    if not primary_ip or primary_ip == LOOPBACK_IP:
        return FALLBACK_IP
    return primary_ip


def build_hosts_content(original: str,
                        old_hostname: str,
                        fqdn: str,
                        short_hostname: str,
                        primary_ip: Optional[str],
                        match: str = 'token') -> str:
    """
    Build the replacement hosts file.

    Lines referencing the old hostname or the new FQDN are dropped, one
    ``<ip> <fqdn> <short>`` mapping is appended, and a ``127.0.0.1 localhost``
    line is guaranteed. ``match='substring'`` reproduces the legacy filter,
    which also drops lines that merely contain either name.
    """
    kept = [
        line for line in original.splitlines()
        if not _references(line, old_hostname, match) and not _references(line, fqdn, match)
    ]

    kept.append(f'{mapping_ip(primary_ip)} {fqdn} {short_hostname}')

    if not any(LOCALHOST_RE.search(line) for line in kept):
        kept.append(LOCALHOST_LINE)

    return '\n'.join(kept) + '\n'


def write_hosts_file(hosts_file: Path, content: str) -> None:
    """Replace the hosts file atomically: temp file in the same directory, then rename."""
    hosts_file = Path(hosts_file)
    fd, tmp_name = tempfile.mkstemp(prefix='.hosts.', dir=str(hosts_file.parent))
    try:
        with os.fdopen(fd, 'w') as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, hosts_file)
    except OSError:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def update_hostname(config, settings, runner, logger, timestamp: str) -> StepOutcome:
    """Rewrite the hosts file and apply the new hostname. Any failure is fatal."""
    fqdn = config.fqdn
    old_hostname = socket.gethostname()
    hosts_file = Path(settings.hosts_file)

    logger.info(f"Updating hostname to: {fqdn} (short: {config.short_hostname})")

    try:
        backup = backup_hosts_file(hosts_file, timestamp)
        logger.info(f"Backup of previous {hosts_file} saved to {backup}")

        primary_ip = detect_primary_ip(runner)
        if primary_ip:
            logger.info(f"Detected primary IP: {primary_ip}")
        else:
            logger.warning(f"Could not detect a primary IP, mapping {fqdn} to {FALLBACK_IP}")

        content = build_hosts_content(
            hosts_file.read_text(),
            old_hostname,
            fqdn,
            config.short_hostname,
            primary_ip,
            match=settings.hosts_match,
        )
        write_hosts_file(hosts_file, content)
    except OSError as e:
        raise MigrationError(f"Failed to update {hosts_file}: {e}")

    result = runner.run_command(['hostnamectl', 'set-hostname', fqdn])
    if not result['success']:
        raise MigrationError(f"hostnamectl set-hostname {fqdn} failed: {result['error']}")

    logger.info(f"Hostname changed from '{old_hostname}' to '{fqdn}'")
    logger.info(f"New {hosts_file} contents:")
    for line in content.splitlines():
        logger.output(line)

    return StepOutcome.succeeded('hostname', f"{old_hostname} -> {fqdn}")
