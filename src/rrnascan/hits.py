#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Parse and classify nhmmer ``--tblout`` hits.

nhmmer tabular columns used here (1-based)
------------------------------------------
1  target name  -> sequence id
3  query name   -> rRNA gene id (HMM name, e.g. ``16S_rRNA``)
7  alifrom      -> alignment start on the target
8  ali to       -> alignment end on the target (lower than alifrom on '-')
13 E-value      -> written to the GFF3 score column

Each hit is classified by how much of the canonical gene length it covers:
rejected below ``reject_cutoff``, partial below ``lencutoff``, else accepted.
"""

from __future__ import annotations

from dataclasses import dataclass
import enum
import logging
import re
from typing import Iterable, Iterator, Mapping, Optional, Tuple

from rrnascan.exceptions import MalformedHitError, ToolFailureError
from rrnascan.reference import GENE_LENGTHS, expected_length

_RE_FAILURE = re.compile(r'fail|error|core dump|bus error', re.IGNORECASE)
_RE_COORD = re.compile(r'^\d+$')

DEFAULT_REJECT_CUTOFF = 0.25
DEFAULT_LENCUTOFF = 0.8


class Disposition(enum.Enum):
    REJECTED = 'rejected'
    PARTIAL = 'partial'
    ACCEPTED = 'accepted'


@dataclass(frozen=True)
class ParsedHit:
    """One tblout data row."""

    sequence_id: str
    gene_id: str
    raw_begin: int
    raw_end: int
    score: Optional[str] = None  # E-value text, kept verbatim


@dataclass(frozen=True)
class ClassifiedHit:
    """A hit with normalized coordinates, coverage and disposition.

    ``begin``/``end`` are 1-based inclusive with ``begin <= end``.
    """

    hit: ParsedHit
    begin: int
    end: int
    strand: str
    expected_length: int
    disposition: Disposition
    product: str
    note: str = ''

    @property
    def sequence_id(self) -> str:
        return self.hit.sequence_id

    @property
    def gene_id(self) -> str:
        return self.hit.gene_id

    @property
    def length(self) -> int:
        return self.end - self.begin + 1

    @property
    def coverage(self) -> float:
        return self.length / self.expected_length

    @property
    def identity_key(self) -> str:
        return f'{self.sequence_id}:{self.begin}-{self.end}({self.strand})'


def parse_hit_line(line: str) -> Optional[ParsedHit]:
    """
    Parse one line of nhmmer tabular output.

    Returns
    -------
    ParsedHit or None
        None for comment and blank lines.

    Raises
    ------
    ToolFailureError
        The line carries a failure signature (nhmmer itself broke).
    MalformedHitError
        Coordinate fields are missing or not integers.
    """
    text = line.rstrip('\n')
    if not text.strip() or text.startswith('#'):
        return None
    if _RE_FAILURE.search(text):
        raise ToolFailureError(text)

    x = text.split()
    if len(x) < 8 or not _RE_COORD.match(x[6]) or not _RE_COORD.match(x[7]):
        raise MalformedHitError(x)

    return ParsedHit(
        sequence_id=x[0],
        gene_id=x[2],
        raw_begin=int(x[6]),
        raw_end=int(x[7]),
        score=x[12] if len(x) > 12 else None,
    )


def iter_hits(lines: Iterable[str]) -> Iterator[ParsedHit]:
    """Yield parsed hits in input order, skipping comments and blanks."""
    for ln in lines:
        hit = parse_hit_line(ln)
        if hit is not None:
            yield hit


def product_label(gene_id: str) -> str:
    """Human-readable product, e.g. ``16S_rRNA`` -> ``16S ribosomal RNA``."""
    return gene_id.replace('_r', ' ribosomal ', 1).replace('5_8', '5.8')


def normalize_coords(raw_begin: int, raw_end: int) -> Tuple[int, int, str]:
    """Return ``(begin, end, strand)`` with ``begin <= end``."""
    if raw_begin < raw_end:
        return raw_begin, raw_end, '+'
    return raw_end, raw_begin, '-'


def classify(
    hit: ParsedHit,
    table: Mapping[str, int] = GENE_LENGTHS,
    reject_cutoff: float = DEFAULT_REJECT_CUTOFF,
    lencutoff: float = DEFAULT_LENCUTOFF,
) -> ClassifiedHit:
    """
    Assign a disposition to ``hit`` from its coverage of the canonical length.

    The reject check runs before the partial check. Partial hits carry a
    coverage note and a ``(partial)`` suffix on the product.

    Raises
    ------
    UnknownGeneError
        If ``hit.gene_id`` is not in ``table``.
    """
    begin, end, strand = normalize_coords(hit.raw_begin, hit.raw_end)
    expected = expected_length(hit.gene_id, table)
    length = end - begin + 1
    product = product_label(hit.gene_id)
    note = ''

    if length < int(reject_cutoff * expected):
        disposition = Disposition.REJECTED
    elif length < int(lencutoff * expected):
        disposition = Disposition.PARTIAL
        note = f'aligned only {100 * length // expected} percent of the {product}'
        product = f'{product} (partial)'
    else:
        disposition = Disposition.ACCEPTED

    return ClassifiedHit(
        hit=hit,
        begin=begin,
        end=end,
        strand=strand,
        expected_length=expected,
        disposition=disposition,
        product=product,
        note=note,
    )


def classify_all(
    hits: Iterable[ParsedHit],
    table: Mapping[str, int] = GENE_LENGTHS,
    reject_cutoff: float = DEFAULT_REJECT_CUTOFF,
    lencutoff: float = DEFAULT_LENCUTOFF,
) -> Iterator[ClassifiedHit]:
    """Classify hits in order, logging each outcome."""
    for hit in hits:
        ch = classify(hit, table, reject_cutoff, lencutoff)
        if ch.disposition is Disposition.REJECTED:
            logging.info(
                'Rejecting short %d nt predicted %s. Adjust via --reject option.',
                ch.length,
                ch.gene_id,
            )
        else:
            logging.info(
                'Found: %s %s L=%d/%d %d..%d %s %s',
                ch.gene_id,
                ch.sequence_id,
                ch.length,
                ch.expected_length,
                ch.begin,
                ch.end,
                ch.strand,
                ch.product,
            )
        yield ch
