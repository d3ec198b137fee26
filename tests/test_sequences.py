from __future__ import annotations

import io
from pathlib import Path

import pytest

from rrnascan import sequences
from rrnascan.exceptions import InputFormatError
from rrnascan.features import IntervalRecord

from conftest import GENOME_CONTIG


def test_looks_like_fasta_accepts_leading_blank_lines(tmp_path):
    fa = tmp_path / 'a.fa'
    fa.write_text('\n\n>c1 desc\nACGT\n', encoding='utf-8')
    sequences.looks_like_fasta(fa)


@pytest.mark.parametrize('content', ['', 'ACGT\n', '@read1\nACGT\n+\nIIII\n'])
def test_looks_like_fasta_rejects(tmp_path, content):
    fa = tmp_path / 'a.txt'
    fa.write_text(content, encoding='utf-8')
    with pytest.raises(InputFormatError):
        sequences.looks_like_fasta(fa)


def test_spool_stdin_copies_stream(tmp_path):
    path = sequences.spool_stdin(io.StringIO('>x\nAC\n'), directory=str(tmp_path))
    try:
        assert path.parent == tmp_path
        assert path.read_text(encoding='utf-8') == '>x\nAC\n'
    finally:
        path.unlink()


def test_reverse_complement():
    assert sequences.reverse_complement('AACGTN') == 'NACGTT'
    assert sequences.reverse_complement('acgR') == 'Ncgt'


@pytest.mark.parametrize(
    'header, key',
    [
        ('16S_rRNA::chr1:99-1684(+)', 'chr1:100-1684(+)'),
        ('5S_rRNA::scaffold:12:0-119(-)', 'scaffold:12:1-119(-)'),
        ('5S_rRNA::chr1:0-119(-) already labelled', 'chr1:1-119(-)'),
        ('chr1:0-119', None),
        ('', None),
    ],
)
def test_identity_for_header(header, key):
    assert sequences.identity_for_header(header) == key


def test_relabel_fasta(tmp_path):
    fa = tmp_path / 'hits.fa'
    fa.write_text(
        '>16S_rRNA::chr1:99-1684(+)\nACGT\n>5S_rRNA::chr9:0-119(-)\nGG\n',
        encoding='utf-8',
    )
    n = sequences.relabel_fasta(fa, {'chr1:100-1684(+)': '16S ribosomal RNA'})
    assert n == 1
    assert fa.read_text(encoding='utf-8') == (
        '>16S_rRNA::chr1:99-1684(+) 16S ribosomal RNA\nACGT\n'
        '>5S_rRNA::chr9:0-119(-)\nGG\n'
    )


def test_write_fasta_wraps():
    out = io.StringIO()
    sequences.write_fasta([('h1 desc', 'A' * 7)], out, width=3)
    assert out.getvalue() == '>h1 desc\nAAA\nAAA\nA\n'


def test_extract_intervals_with_pyfaidx(genome_small: Path, revcomp):
    intervals = [
        IntervalRecord('ctg1', 0, 10, '5S_rRNA', 100, '+'),
        IntervalRecord('ctg1', 390, 400, '5S_rRNA', 100, '-'),
    ]
    recs = sequences.extract_intervals(
        genome_small, intervals, {'ctg1:1-10(+)': '5S ribosomal RNA'}
    )
    assert recs == [
        ('5S_rRNA::ctg1:0-10(+) 5S ribosomal RNA', GENOME_CONTIG[0:10]),
        ('5S_rRNA::ctg1:390-400(-)', revcomp(GENOME_CONTIG[390:400])),
    ]
