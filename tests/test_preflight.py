"""Tests for the preflight checks."""

from unittest.mock import patch

import pytest

from conftest import Answers, make_result
from idempiere_migrate.migrate.preflight import check_connectivity, require_root, verify_export_file
from idempiere_migrate.migrate.remote import RemoteConnection
from idempiere_migrate.migrate.report import MigrationError, StepStatus


EXPORT = '/syvasoft/idempiere-server/data/ExpDat.dmp'
UTILS = '/syvasoft/idempiere-server/utils'


@pytest.fixture
def remote(runner):
    return RemoteConnection('old', 'root', runner=runner)


class TestRequireRoot:

    def test_non_root_is_fatal(self):
        with patch('idempiere_migrate.migrate.preflight.os.geteuid', return_value=1000):
            with pytest.raises(MigrationError, match='root'):
                require_root()

    def test_root_passes(self):
        with patch('idempiere_migrate.migrate.preflight.os.geteuid', return_value=0):
            require_root()


class TestConnectivity:

    def test_reachable(self, runner, remote, logger):
        runner.on_contains('echo connected', result=make_result(stdout='connected\n'))

        outcome = check_connectivity(remote, logger)

        assert outcome.status == StepStatus.SUCCEEDED

    def test_unreachable_is_fatal(self, runner, remote, logger):
        runner.on_contains('echo connected', result=make_result(False, returncode=255))

        with pytest.raises(MigrationError, match='Cannot SSH to root@old'):
            check_connectivity(remote, logger)


class TestVerifyExportFile:

    def test_present_file_shows_metadata(self, runner, remote, logger, read_log):
        runner.on_contains('test -f', result=make_result())
        runner.on_contains('ls -lh', result=make_result(stdout='-rw-r--r-- 1 root root 1.2G 2026-10-17 22:00 ExpDat.dmp\n'))
        confirm = Answers([])

        outcome = verify_export_file(remote, EXPORT, UTILS, logger, confirm)

        assert outcome.status == StepStatus.SUCCEEDED
        assert confirm.prompts == []
        assert 'ExpDat.dmp' in read_log()
        assert 'stat' in runner.calls[-1]['cmd'][-1]

    def test_missing_file_continue(self, runner, remote, logger):
        runner.on_contains('test -f', result=make_result(False))

        outcome = verify_export_file(remote, EXPORT, UTILS, logger, Answers([True]))

        assert outcome.status == StepStatus.SKIPPED
        assert all('ls -lh' not in call['cmd'][-1] for call in runner.calls)

    def test_missing_file_declined_is_fatal(self, runner, remote, logger, read_log):
        runner.on_contains('test -f', result=make_result(False))

        with pytest.raises(MigrationError):
            verify_export_file(remote, EXPORT, UTILS, logger, Answers([False]))
        assert 'RUN_DBExport.sh' in read_log()

    def test_metadata_errors_are_logged(self, runner, remote, logger, read_log):
        runner.on_contains('test -f', result=make_result())
        runner.on_contains('ls -lh', result=make_result(
            stdout='  File: /syvasoft/idempiere-server/data/ExpDat.dmp\n',
            stderr="ls: unrecognized option '--time-style=long-iso'\n"))

        verify_export_file(remote, EXPORT, UTILS, logger, Answers([]))

        log = read_log()
        assert 'File: /syvasoft/idempiere-server/data/ExpDat.dmp' in log
        assert "ls: unrecognized option '--time-style=long-iso'" in log
