"""
Tests for the command line interface.
"""

import re

import pytest
import requests
from click.testing import CliRunner

from scripts import excel_data_cli
from scripts.excel_data_cli import cli


@pytest.fixture
def run(tmp_path):
    """Invoke the CLI against a file database and backup dir under tmp_path."""
    runner = CliRunner()
    base_args = [
        '--database-url', f"sqlite:///{tmp_path / 'cli.db'}",
        '--backup-dir', str(tmp_path / 'backups'),
    ]

    def invoke(*args, **kwargs):
        return runner.invoke(cli, base_args + list(args), **kwargs)

    return invoke


def entry_id(output):
    return re.search(r'ID: ([0-9a-f-]{36})', output).group(1)


class TestSubmissions:
    """Test import and submit."""

    def test_import_csv(self, run, tmp_path):
        source = tmp_path / 'sales.csv'
        source.write_bytes(b'region,total\nnorth,10\nsouth,20\n')

        result = run('import', '--file', str(source), '--month', 'March', '--year', '2025')

        assert result.exit_code == 0, result.output
        assert 'Import successful' in result.output
        assert 'Period: march 2025' in result.output
        assert 'Records: 2' in result.output

    def test_import_invalid_month(self, run, tmp_path):
        source = tmp_path / 'sales.csv'
        source.write_bytes(b'a\n1\n')

        result = run('import', '--file', str(source), '--month', 'smarch', '--year', '2025')

        assert result.exit_code == 1
        assert "Invalid month: 'smarch'" in result.output

    def test_submit_from_stdin(self, run):
        result = run('submit', '--month', 'june', '--year', '2024', input='Name\tAge\nAna\t31\n')

        assert result.exit_code == 0, result.output
        assert 'File: pasted_data.xlsx' in result.output
        assert 'Records: 1' in result.output


class TestReview:
    """Test list, show, export, delete and stats."""

    def test_full_cycle(self, run, tmp_path):
        created = run('submit', '--month', 'june', '--year', '2024', '--name', 'june.xlsx',
                      input='a\tb\n1\t2\n')
        eid = entry_id(created.output)

        listing = run('list')
        assert eid in listing.output
        assert 'june 2024' in listing.output

        shown = run('show', eid)
        assert '"recordCount": 1' in shown.output

        output = tmp_path / 'out.xlsx'
        exported = run('export', eid, '--output', str(output))
        assert exported.exit_code == 0, exported.output
        assert output.read_bytes().startswith(b'PK')

        stats = run('stats')
        assert 'Total files: 1' in stats.output
        assert 'Total records: 1' in stats.output

        deleted = run('delete', eid, '--yes')
        assert deleted.exit_code == 0
        assert run('show', eid).exit_code == 1
        assert 'No data stored yet.' in run('list').output

    def test_show_unknown(self, run):
        result = run('show', 'missing-id')

        assert result.exit_code == 1
        assert 'not found' in result.output


class TestBackupCommands:
    """Test backup create, list and restore."""

    def test_create_list_restore(self, run):
        run('submit', '--month', 'june', '--year', '2024', input='a\n1\n2\n')

        created = run('backup', 'create')
        assert created.exit_code == 0, created.output
        filename = re.search(r'Backup created: (\S+)', created.output).group(1)

        assert filename in run('backup', 'list').output

        restored = run('backup', 'restore', filename)
        assert restored.exit_code == 0, restored.output
        assert 'Restored 1 entries' in restored.output
        assert 'Total files: 2' in run('stats').output

    def test_list_empty(self, run):
        assert 'No backups found.' in run('backup', 'list').output

    def test_restore_missing(self, run):
        result = run('backup', 'restore', 'backup-missing.json')

        assert result.exit_code == 1
        assert 'Restore failed' in result.output


class TestApiMode:
    """Test commands that call the REST API."""

    def test_export_uses_server_filename(self, monkeypatch, tmp_path):
        calls = []

        def fake_request(method, url, **kwargs):
            calls.append((method, url, kwargs['headers']))
            response = requests.Response()
            response.status_code = 200
            response._content = b'PK\x03\x04workbook'
            response.headers['Content-Disposition'] = \
                "attachment; filename=\"q1 report.xlsx\"; filename*=UTF-8''q1%20report.xlsx"
            return response

        monkeypatch.setattr(excel_data_cli.requests, 'request', fake_request)
        monkeypatch.chdir(tmp_path)

        result = CliRunner().invoke(cli, [
            '--api-url', 'http://api.test/', '--api-key', 'k', 'export', 'abc'
        ])

        assert result.exit_code == 0, result.output
        assert (tmp_path / 'q1 report.xlsx').read_bytes() == b'PK\x03\x04workbook'
        assert calls == [('GET', 'http://api.test/api/excel-data/abc/download', {'X-API-Key': 'k'})]

    def test_attachment_filename_drops_directories(self):
        header = 'attachment; filename="../../etc/report.xlsx"'

        assert excel_data_cli.attachment_filename(header, 'data.xlsx') == 'report.xlsx'
        assert excel_data_cli.attachment_filename(None, 'data.xlsx') == 'data.xlsx'
