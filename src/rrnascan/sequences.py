#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""FASTA helpers: input checks, stdin spooling and rRNA sequence extraction.

Extracted sequences are named the way ``bedtools getfasta -s -name+`` names
them, with the product appended as the description::

    >16S_rRNA::contig1:99-1684(+) 16S ribosomal RNA

The pyfaidx path writes the same headers, so both extractors are
interchangeable downstream.
"""

from __future__ import annotations

from pathlib import Path
import re
import shutil
import tempfile
from typing import Iterable, List, Mapping, Optional, TextIO, Tuple

from pyfaidx import Fasta  # type: ignore

from rrnascan.exceptions import InputFormatError
from rrnascan.features import IntervalRecord

_RE_BED_HEADER = re.compile(
    r'^(?P<name>.*?)::(?P<seqid>.+):(?P<start>\d+)-(?P<end>\d+)\((?P<strand>[+-])\)$'
)


def looks_like_fasta(path: Path) -> None:
    """Raise InputFormatError unless the first non-blank line starts with '>'."""
    with open(path, 'r', encoding='utf-8', errors='replace') as fh:
        for ln in fh:
            if not ln.strip():
                continue
            if ln.startswith('>'):
                return
            break
    raise InputFormatError(
        f'{path} does not look like a FASTA file',
        suggestion="The first line should be a '>' header.",
    )


def spool_stdin(stream: TextIO, directory: Optional[str] = None) -> Path:
    """Copy piped input to a named temporary file; the caller removes it."""
    with tempfile.NamedTemporaryFile(
        'w', suffix='.fna', prefix='rrnascan_', dir=directory, delete=False
    ) as tmp:
        shutil.copyfileobj(stream, tmp)
    return Path(tmp.name)


def reverse_complement(seq: str) -> str:
    """Return reverse complement for A/C/G/T/N sequences (others -> N)."""
    comp = str.maketrans('ACGTNacgtn', 'TGCANtgcan')
    seq_rc = seq.translate(comp)
    return ''.join(ch if ch in 'ACGTNacgtn' else 'N' for ch in seq_rc[::-1])


def interval_header(iv: IntervalRecord, product: Optional[str] = None) -> str:
    """bedtools-style header for an interval, plus optional product text."""
    header = f'{iv.name}::{iv.seqid}:{iv.start}-{iv.end}({iv.strand})'
    if product:
        header = f'{header} {product}'
    return header


def identity_for_header(header: str) -> Optional[str]:
    """Map a bedtools header back to its ``seq:begin-end(strand)`` identity key."""
    m = _RE_BED_HEADER.match(header.split(None, 1)[0] if header else '')
    if not m:
        return None
    begin = int(m.group('start')) + 1
    return f'{m.group("seqid")}:{begin}-{m.group("end")}({m.group("strand")})'


def relabel_fasta(path: Path, identities: Mapping[str, str]) -> int:
    """
    Append product names to the headers of a bedtools FASTA, in place.

    Returns
    -------
    int
        Number of headers relabelled.
    """
    lines = Path(path).read_text(encoding='utf-8').splitlines()
    n = 0
    out: List[str] = []
    for ln in lines:
        if ln.startswith('>'):
            key = identity_for_header(ln[1:].strip())
            product = identities.get(key) if key else None
            if product:
                ln = f'{ln.rstrip()} {product}'
                n += 1
        out.append(ln)
    Path(path).write_text('\n'.join(out) + ('\n' if out else ''), encoding='utf-8')
    return n


def write_fasta(
    records: Iterable[Tuple[str, str]], handle: TextIO, width: int = 60
) -> None:
    """Write (header, sequence) pairs; headers exclude the leading '>'."""
    for header, seq in records:
        handle.write(f'>{header}\n')
        for i in range(0, len(seq), width):
            handle.write(seq[i : i + width] + '\n')


def extract_intervals(
    fasta: Path,
    intervals: Iterable[IntervalRecord],
    identities: Mapping[str, str],
) -> List[Tuple[str, str]]:
    """
    Fetch interval sequences with pyfaidx (creates a .fai index if missing).

    Minus-strand intervals are reverse-complemented.
    """
    fa = Fasta(str(fasta), as_raw=True, sequence_always_upper=True)
    records: List[Tuple[str, str]] = []
    try:
        for iv in intervals:
            seq = str(fa[iv.seqid][iv.start : iv.end])
            if iv.strand == '-':
                seq = reverse_complement(seq)
            key = f'{iv.seqid}:{iv.start + 1}-{iv.end}({iv.strand})'
            records.append((interval_header(iv, identities.get(key)), seq))
    finally:
        fa.close()
    return records
