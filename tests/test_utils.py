"""Tests for the subprocess runner, the run logger and the single-run lock."""

import os
import sys

import pytest

from idempiere_migrate.utils.lock import RunLock
from idempiere_migrate.utils.logger import MigrationLogger, log_file_path, run_timestamp
from idempiere_migrate.utils.subprocess_utils import SubprocessRunner


PY = sys.executable


class TestSubprocessRunner:

    def test_success_captures_stdout(self):
        result = SubprocessRunner().run_command([PY, '-c', 'print("hello")'])

        assert result['success'] is True
        assert result['returncode'] == 0
        assert result['stdout'].strip() == 'hello'

    def test_non_zero_exit(self):
        result = SubprocessRunner().run_command([PY, '-c', 'import sys; sys.stderr.write("boom"); sys.exit(3)'])

        assert result['success'] is False
        assert result['returncode'] == 3
        assert 'exit code 3' in result['error']
        assert 'boom' in result['error']

    def test_missing_command(self):
        result = SubprocessRunner().run_command(['definitely-not-a-real-binary-xyz'])

        assert result['success'] is False
        assert 'Command not found' in result['error']

    def test_timeout(self):
        result = SubprocessRunner(timeout=1).run_command([PY, '-c', 'import time; time.sleep(5)'])

        assert result['success'] is False
        assert 'timed out' in result['error']

    def test_arguments_are_not_shell_interpreted(self, tmp_path):
        marker = tmp_path / 'marker'
        result = SubprocessRunner().run_command(
            [PY, '-c', 'import sys; print(sys.argv[1])', f'; touch {marker}'])

        assert result['stdout'].strip() == f'; touch {marker}'
        assert not marker.exists()

    def test_stream_merges_output_and_reports_lines(self):
        lines = []
        code = 'import sys; print("out"); sys.stderr.write("err\\n"); sys.stdout.write("a\\rb\\n"); sys.exit(2)'

        result = SubprocessRunner().stream_command([PY, '-c', code], on_line=lines.append)

        assert result['success'] is False
        assert result['returncode'] == 2
        assert 'out' in lines and 'err' in lines
        assert 'a' in lines and 'b' in lines

    def test_stream_uses_cwd(self, tmp_path):
        result = SubprocessRunner().stream_command([PY, '-c', 'import os; print(os.getcwd())'], cwd=tmp_path)

        assert result['success'] is True
        assert os.path.samefile(result['stdout'].strip(), tmp_path)

    def test_stream_missing_command(self, tmp_path):
        result = SubprocessRunner().stream_command(['./RUN_DBRestore.sh'], cwd=tmp_path)

        assert result['success'] is False
        assert result['error']


class TestMigrationLogger:

    def test_writes_file_and_splits_console_streams(self, tmp_path, capsys):
        log_file = log_file_path(tmp_path / 'log', '2026-10-18_12-00-00')
        logger = MigrationLogger(log_file, name='test-logger-streams')

        logger.section('Syncing Paths')
        logger.info('plain info')
        logger.warning('careful')
        logger.close()

        captured = capsys.readouterr()
        content = log_file.read_text()
        assert log_file.name == 'idempiere_migration_2026-10-18_12-00-00.log'
        assert 'Syncing Paths' in content and 'plain info' in content and 'careful' in content
        assert 'plain info' in captured.out and 'careful' not in captured.out
        assert 'careful' in captured.err
        assert oct(os.stat(log_file).st_mode & 0o777) == '0o644'

    def test_reopening_does_not_duplicate_handlers(self, tmp_path):
        first = MigrationLogger(tmp_path / 'a.log', name='test-logger-reuse')
        second = MigrationLogger(tmp_path / 'b.log', name='test-logger-reuse')

        assert len(second.logger.handlers) == 3
        first.close()
        second.close()

    def test_command_output_records_both_streams(self, tmp_path):
        logger = MigrationLogger(tmp_path / 'c.log', name='test-logger-command-output')

        logger.command_output({'stdout': 'Reading package lists...\n\n', 'stderr': 'E: Unable to locate package sshpass\n'})
        logger.command_output({'stdout': '', 'stderr': None})
        logger.close()

        lines = (tmp_path / 'c.log').read_text().splitlines()
        assert len(lines) == 2
        assert lines[0].endswith('  | Reading package lists...')
        assert lines[1].endswith('  | E: Unable to locate package sshpass')

    def test_run_timestamp_format(self):
        from datetime import datetime

        assert run_timestamp(datetime(2026, 10, 18, 9, 5, 7)) == '2026-10-18_09-05-07'


class TestRunLock:

    def test_second_holder_is_rejected_with_holder_details(self, tmp_path):
        lock_path = tmp_path / 'migrate.lock'
        log_file = tmp_path / 'idempiere_migration_2026-10-18_10-00-00.log'

        with RunLock(lock_path, log_file):
            assert lock_path.read_text().splitlines() == [str(os.getpid()), str(log_file)]
            with pytest.raises(RuntimeError, match='already running') as excinfo:
                with RunLock(lock_path):
                    pass
            assert f'pid {os.getpid()}' in str(excinfo.value)
            assert str(log_file) in str(excinfo.value)
            # the refused attempt must not clobber the holder's record
            assert lock_path.read_text().splitlines()[0] == str(os.getpid())

        assert not lock_path.exists()

    def test_lock_is_reusable_after_release(self, tmp_path):
        lock_path = tmp_path / 'run' / 'migrate.lock'

        with RunLock(lock_path):
            pass
        with RunLock(lock_path):
            assert lock_path.exists()

    def test_unusable_lock_location_is_fatal(self, tmp_path):
        blocker = tmp_path / 'file'
        blocker.write_text('')

        with pytest.raises(RuntimeError, match='Cannot acquire lock'):
            with RunLock(blocker / 'migrate.lock'):
                pass
