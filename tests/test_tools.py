from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from rrnascan import tools
from rrnascan.exceptions import ToolExecutionError, ToolNotFoundError


def test_nhmmer_command_layout():
    cmd = tools.nhmmer_command(Path('db/bac.hmm'), Path('genome.fa'), 4, 1e-6, 3878)
    assert cmd == [
        'nhmmer',
        '--cpu',
        '4',
        '-E',
        '1e-06',
        '--w_length',
        '3878',
        '-o',
        '/dev/null',
        '--tblout',
        '/dev/stdout',
        'db/bac.hmm',
        'genome.fa',
    ]


def test_bedtools_command_layout():
    cmd = tools.bedtools_getfasta_command(
        Path('genome.fa'), Path('hits.bed'), Path('out.fa')
    )
    assert cmd == [
        'bedtools',
        'getfasta',
        '-s',
        '-name+',
        '-fo',
        'out.fa',
        '-fi',
        'genome.fa',
        '-bed',
        'hits.bed',
    ]


@pytest.mark.parametrize(
    'text, expected',
    [
        ('# nhmmer :: search a DNA model\n# HMMER 3.1b2 (February 2015)\n', (3, 1)),
        ('# HMMER 3.3.2 (Nov 2020); http://hmmer.org/\n', (3, 3)),
        ('# HMMER 3.0 (March 2010)\n', (3, 0)),
        ('usage: something else\n', (0, 0)),
    ],
)
def test_parse_hmmer_version(text, expected):
    assert tools.parse_hmmer_version(text) == expected


def test_find_executable_missing(monkeypatch):
    monkeypatch.setattr(tools.shutil, 'which', lambda name: None)
    with pytest.raises(ToolNotFoundError) as exc:
        tools.find_executable('bedtools')
    assert 'bioconda bedtools' in str(exc.value)


def test_run_command_raises_on_non_zero_exit(monkeypatch):
    def fake_run(cmd, capture_output, text):
        return SimpleNamespace(returncode=2, stdout='', stderr='bad option\n')

    monkeypatch.setattr(tools.subprocess, 'run', fake_run)
    with pytest.raises(ToolExecutionError) as exc:
        tools.run_command(['nhmmer', '--bogus'], 'nhmmer')
    assert exc.value.return_code == 2
    assert 'bad option' in str(exc.value)


def test_run_command_returns_result(monkeypatch):
    def fake_run(cmd, capture_output, text):
        return SimpleNamespace(returncode=0, stdout='line1\nline2\n', stderr='')

    monkeypatch.setattr(tools.subprocess, 'run', fake_run)
    result = tools.run_command(['echo', 'x'], 'echo')
    assert result.success
    assert result.command_string == 'echo x'
    assert result.stdout.splitlines() == ['line1', 'line2']


def test_run_command_vanished_executable(monkeypatch):
    def fake_run(cmd, capture_output, text):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(tools.subprocess, 'run', fake_run)
    with pytest.raises(ToolNotFoundError):
        tools.run_command(['nhmmer'], 'nhmmer')


def test_old_nhmmer_rejected(monkeypatch):
    monkeypatch.setattr(tools.shutil, 'which', lambda name: f'/usr/bin/{name}')
    monkeypatch.setattr(
        tools.subprocess,
        'run',
        lambda cmd, capture_output, text: SimpleNamespace(
            returncode=0, stdout='# HMMER 3.0 (March 2010)\n', stderr=''
        ),
    )
    with pytest.raises(ToolNotFoundError) as exc:
        tools.check_nhmmer_version()
    assert 'need HMMER >= 3.1' in str(exc.value)


def test_run_nhmmer_returns_lines(monkeypatch):
    seen = {}

    def fake_run(cmd, capture_output, text):
        seen['cmd'] = cmd
        return SimpleNamespace(returncode=0, stdout='# c\nrow\n', stderr='')

    monkeypatch.setattr(tools.shutil, 'which', lambda name: f'/opt/bin/{name}')
    monkeypatch.setattr(tools.subprocess, 'run', fake_run)
    lines = tools.run_nhmmer(Path('bac.hmm'), Path('g.fa'), 2, 1e-6, 100)
    assert lines == ['# c', 'row']
    assert seen['cmd'][0] == '/opt/bin/nhmmer'
    assert seen['cmd'][-2:] == ['bac.hmm', 'g.fa']
