"""Configuration loader for the iDempiere migration wizard."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Tuple

from dotenv import load_dotenv

from idempiere_migrate.utils import prompts


DEFAULT_SYNC_PATHS = (
    '/syvasoft/archive',
    '/syvasoft/attachments',
    '/syvasoft/reports',
    '/syvasoft/sql',
    '/syvasoft/store',
    '/syvasoft/idempiere-server/data',
)

AUTH_KEY = 'key'
AUTH_PASSWORD = 'password'


def _split_list(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(',') if item.strip())


class MigrationSettings:
    """Site defaults loaded from the environment or a .env file."""

    def __init__(self, env_file=None):
        """Load settings from environment file."""
        if env_file:
            if not os.path.exists(env_file):
                raise FileNotFoundError(f"Environment file not found: {env_file}")
            load_dotenv(env_file)
        else:
            load_dotenv()

        self._load()

    def _int(self, name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None or raw.strip() == '':
            return default
        try:
            value = int(raw)
        except ValueError:
            print(f"WARNING: Invalid {name} '{raw}', using {default}")
            return default
        if value < 0:
            print(f"WARNING: {name} must be >= 0, using {default}")
            return default
        return value

    def _choice(self, name: str, default: str, allowed: Tuple[str, ...]) -> str:
        value = os.getenv(name, default).strip().lower()
        if value not in allowed:
            print(f"WARNING: Invalid {name} '{value}', using '{default}'")
            return default
        return value

    def _load(self):
        # Service and application layout
        self.service_name = os.getenv('IDEMPIERE_SERVICE', 'idempiere')
        sync_paths = _split_list(os.getenv('SYNC_PATHS', ''))
        self.sync_paths = sync_paths or DEFAULT_SYNC_PATHS
        self.default_export_file = os.getenv(
            'DEFAULT_EXPORT_FILE', '/syvasoft/idempiere-server/data/ExpDat.dmp')
        self.utils_dir = Path(os.getenv('UTILS_DIR', '/syvasoft/idempiere-server/utils'))
        scripts = _split_list(os.getenv('RESTORE_SCRIPTS', ''))
        self.restore_scripts = scripts or ('RUN_DBRestore.sh', 'RUN_SyncDB.sh')
        self.app_root = Path(os.getenv('APP_ROOT', '/syvasoft'))
        self.app_owner = os.getenv('APP_OWNER', 'idempiere:idempiere')

        mode = os.getenv('APP_ROOT_MODE', '0755').strip()
        try:
            int(mode, 8)
            self.app_root_mode = mode
        except ValueError:
            print(f"WARNING: Invalid APP_ROOT_MODE '{mode}', using 0755")
            self.app_root_mode = '0755'

        # Local system files
        self.log_dir = Path(os.getenv('LOG_DIR', '/var/log'))
        self.hosts_file = Path(os.getenv('HOSTS_FILE', '/etc/hosts'))
        self.lock_file = Path(os.getenv('LOCK_FILE', '/run/idempiere-migrate.lock'))
        self.default_domain = os.getenv('DEFAULT_DOMAIN', '').strip()
        self.hosts_match = self._choice('HOSTS_MATCH', 'token', ('token', 'substring'))

        # Remote access
        self.ssh_port = self._int('SSH_PORT', 22) or 22
        self.ssh_strict_host_key = os.getenv('SSH_STRICT_HOST_KEY', 'no').strip().lower() in ('1', 'yes', 'true')
        self.ssh_timeout = self._int('SSH_TIMEOUT', 120) or None

        # Service restart behaviour
        self.service_start_delay = self._int('SERVICE_START_DELAY', 2)
        self.journal_lines = self._int('JOURNAL_LINES', 200) or 200
        self.service_start_failure = self._choice('SERVICE_START_FAILURE', 'warn', ('warn', 'fatal'))


def compute_fqdn(short_hostname: str, domain: str) -> str:
    """Return ``short`` when the domain is empty, else ``short.domain``."""
    domain = (domain or '').strip().strip('.')
    if not domain:
        return short_hostname
    return f"{short_hostname}.{domain}"


@dataclass(frozen=True)
class MigrationConfig:
    """Answers collected at the start of the run. Never mutated afterwards."""

    short_hostname: str
    domain: str
    remote_host: str
    remote_user: str
    auth_mode: str = AUTH_KEY
    export_file: str = ''
    sync_paths: Tuple[str, ...] = field(default=DEFAULT_SYNC_PATHS)

    @property
    def fqdn(self) -> str:
        return compute_fqdn(self.short_hostname, self.domain)

    @property
    def uses_password(self) -> bool:
        return self.auth_mode == AUTH_PASSWORD


def collect_config(settings: MigrationSettings,
                   ask: Optional[Callable[..., str]] = None,
                   ask_yes_no: Optional[Callable[..., bool]] = None,
                   skip_hostname: bool = False,
                   current_hostname: str = '') -> MigrationConfig:
    """Prompt for everything the run needs, in the wizard's fixed order."""
    ask = ask or prompts.ask_question
    ask_yes_no = ask_yes_no or prompts.ask_yes_no

    if skip_hostname:
        short_hostname, domain = current_hostname, ''
    else:
        short_hostname = ask("Enter short hostname (e.g. 'zion')")
        hint = f"default: {settings.default_domain}, 'none' for no domain" if settings.default_domain else "leave empty for none"
        domain = ask(f"Enter domain ({hint})", default=settings.default_domain, required=False)
        if domain.strip().lower() == 'none':
            domain = ''

    remote_host = ask("Old server IP or hostname")
    remote_user = ask("Old server SSH username")
    export_file = ask("Path to DB export on OLD server", default=settings.default_export_file)
    use_key = ask_yes_no("Use SSH key auth?", default=True)

    return MigrationConfig(
        short_hostname=short_hostname.strip(),
        domain=domain.strip(),
        remote_host=remote_host.strip(),
        remote_user=remote_user.strip(),
        auth_mode=AUTH_KEY if use_key else AUTH_PASSWORD,
        export_file=export_file.strip(),
        sync_paths=tuple(settings.sync_paths),
    )
