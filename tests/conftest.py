from __future__ import annotations

from pathlib import Path
import textwrap
from typing import Callable, Dict, List

import pytest

TBLOUT_HEADER = textwrap.dedent("""\
    # target name        accession  query name           accession  hmmfrom hmm to alifrom  ali to envfrom  env to  sq len strand   E-value  score  bias  description of target
    #------------------- ---------- -------------------- ---------- ------- ------- ------- ------- ------- ------- ------- ------ --------- ------ ----- ---------------------
""")

TBLOUT_FOOTER = textwrap.dedent("""\
    #
    # Program:         nhmmer
    # Version:         3.3.2 (Nov 2020)
    # [ok]
""")

GENOME_CONTIG = 'ACGTTGCA' * 50  # 400 nt


def tbl_row(
    seqid: str,
    gene: str,
    alifrom: int,
    alito: int,
    evalue: str = '1.2e-30',
) -> str:
    """One nhmmer --tblout data row."""
    strand = '+' if alifrom < alito else '-'
    return (
        f'{seqid:<20} -          {gene:<20} RF00001          1     119 '
        f'{alifrom:>7} {alito:>7} {alifrom:>7} {alito:>7}   50000 {strand:>6} '
        f'{evalue:>9}  101.3   0.1  -\n'
    )


def make_tblout(rows: List[str]) -> str:
    return TBLOUT_HEADER + ''.join(rows) + TBLOUT_FOOTER


@pytest.fixture
def tblout_mixed(tmp_path) -> Path:
    """
    Hits on two contigs, out of order, with every disposition:

      chr2 16S 50..1634     accepted (1585/1585)
      chr1 16S 500..1900    accepted (1401/1585, '-' strand)
      chr1 23S 100..1299    partial  (1200/3232, 37 percent)
      chr1 16S 4000..4299   rejected (300 < int(0.25 * 1585) = 396)
    """
    rows = [
        tbl_row('chr2', '16S_rRNA', 50, 1634),
        tbl_row('chr1', '16S_rRNA', 1900, 500),
        tbl_row('chr1', '23S_rRNA', 100, 1299, evalue='3.4e-120'),
        tbl_row('chr1', '16S_rRNA', 4000, 4299),
    ]
    p = tmp_path / 'hits.tbl'
    p.write_text(make_tblout(rows), encoding='utf-8')
    return p


@pytest.fixture
def tblout_unknown_gene(tmp_path) -> Path:
    rows = [
        tbl_row('chr1', '16S_rRNA', 100, 1684),
        tbl_row('chr1', 'tRNA-Ala', 2000, 2072),
    ]
    p = tmp_path / 'unknown.tbl'
    p.write_text(make_tblout(rows), encoding='utf-8')
    return p


@pytest.fixture
def tblout_malformed(tmp_path) -> Path:
    rows = [
        tbl_row('chr1', '16S_rRNA', 100, 1684),
        'chr1  -  16S_rRNA  RF00177  1  1585  abc  1684\n',
    ]
    p = tmp_path / 'malformed.tbl'
    p.write_text(make_tblout(rows), encoding='utf-8')
    return p


@pytest.fixture
def genome_small(tmp_path) -> Path:
    """Single 400 nt contig 'ctg1' for sequence extraction."""
    return write_fasta(tmp_path / 'genome.fa', {'ctg1': GENOME_CONTIG})


@pytest.fixture
def tblout_5s(tmp_path) -> Path:
    """
    Two full-length 5S hits on ctg1:
      + strand 101..219
      - strand 232..350 (reported 350 -> 232)
    """
    rows = [
        tbl_row('ctg1', '5S_rRNA', 350, 232),
        tbl_row('ctg1', '5S_rRNA', 101, 219),
    ]
    p = tmp_path / 'five_s.tbl'
    p.write_text(make_tblout(rows), encoding='utf-8')
    return p


def write_fasta(path: Path, contigs: Dict[str, str]) -> Path:
    """Write a minimal FASTA file."""
    with path.open('w', encoding='utf-8') as fh:
        for name, seq in contigs.items():
            fh.write(f'>{name}\n')
            fh.write(seq + '\n')
    return path


def _parse_fasta(txt: str) -> Dict[str, str]:
    """Return dict of header->sequence from FASTA text."""
    out: Dict[str, str] = {}
    header = None
    chunks: List[str] = []
    for ln in txt.splitlines():
        if ln.startswith('>'):
            if header is not None:
                out[header] = ''.join(chunks)
            header = ln[1:].strip()
            chunks = []
        elif ln.strip():
            chunks.append(ln.strip())
    if header is not None:
        out[header] = ''.join(chunks)
    return out


@pytest.fixture
def parse_fasta() -> Callable[[str], Dict[str, str]]:
    return _parse_fasta


def _revcomp(seq: str) -> str:
    return seq.translate(str.maketrans('ACGT', 'TGCA'))[::-1]


@pytest.fixture
def revcomp() -> Callable[[str], str]:
    return _revcomp
