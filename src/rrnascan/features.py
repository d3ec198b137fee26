#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Turn classified hits into GFF3 features and BED intervals.

Accepted and partial hits are folded, in input order, into an
:class:`Assembly` holding three things:

- GFF3 feature rows (1-based, inclusive),
- BED interval rows (0-based, half-open) for sequence extraction,
- an identity map ``seq:begin-end(strand) -> product`` used to label
  extracted sequences.

Rejected hits contribute nothing. Features are sorted by sequence id and
start only when written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import reduce
from pathlib import Path
import shutil
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, TextIO, Tuple

import pandas as pd

from rrnascan.hits import ClassifiedHit, Disposition

GFF_VERSION_HEADER = '##gff-version 3'
FASTA_DIRECTIVE = '##FASTA'
BED_SCORE = 100


@dataclass(frozen=True)
class FeatureRecord:
    """One GFF3 row."""

    seqid: str
    source: str
    ftype: str
    start: int
    end: int
    score: str
    strand: str
    phase: str
    attributes: str

    def to_line(self) -> str:
        return '\t'.join(
            (
                self.seqid,
                self.source,
                self.ftype,
                str(self.start),
                str(self.end),
                self.score,
                self.strand,
                self.phase,
                self.attributes,
            )
        )


@dataclass(frozen=True)
class IntervalRecord:
    """One BED6 row (0-based start)."""

    seqid: str
    start: int
    end: int
    name: str
    score: int
    strand: str

    def to_line(self) -> str:
        return (
            f'{self.seqid}\t{self.start}\t{self.end}\t'
            f'{self.name}\t{self.score}\t{self.strand}'
        )


@dataclass(frozen=True)
class Assembly:
    """
    Accumulated output of one pass over the hits.

    Every :meth:`add` returns a new instance; ``identities`` is a read-only
    view so earlier assemblies never change.
    """

    features: Tuple[FeatureRecord, ...] = ()
    intervals: Tuple[IntervalRecord, ...] = ()
    identities: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def add(self, ch: ClassifiedHit, source: str) -> 'Assembly':
        """Return a new Assembly with ``ch`` appended (rejected hits are ignored)."""
        if ch.disposition is Disposition.REJECTED:
            return self
        identities = dict(self.identities)
        # duplicate keys: last hit wins
        identities[ch.identity_key] = ch.product
        return Assembly(
            features=self.features + (feature_from_hit(ch, source),),
            intervals=self.intervals + (interval_from_hit(ch),),
            identities=MappingProxyType(identities),
        )


def gff3_escape(s: str) -> str:
    """
    Escape attribute values for GFF3 (percent-first order).
    """
    return (
        s.replace('%', '%25')
        .replace(';', '%3B')
        .replace('=', '%3D')
        .replace(',', '%2C')
        .replace('&', '%26')
    )


def feature_from_hit(ch: ClassifiedHit, source: str) -> FeatureRecord:
    attrs = f'Name={gff3_escape(ch.gene_id)};product={gff3_escape(ch.product)}'
    if ch.note:
        attrs += f';note={gff3_escape(ch.note)}'
    return FeatureRecord(
        seqid=ch.sequence_id,
        source=source,
        ftype='rRNA',
        start=ch.begin,
        end=ch.end,
        score=ch.hit.score if ch.hit.score is not None else '.',
        strand=ch.strand,
        phase='.',
        attributes=attrs,
    )


def interval_from_hit(ch: ClassifiedHit) -> IntervalRecord:
    return IntervalRecord(
        seqid=ch.sequence_id,
        start=ch.begin - 1,
        end=ch.end,
        name=ch.gene_id,
        score=BED_SCORE,
        strand=ch.strand,
    )


def assemble(hits: Iterable[ClassifiedHit], source: str) -> Assembly:
    """Fold classified hits, in order, into an :class:`Assembly`."""
    return reduce(lambda acc, ch: acc.add(ch, source), hits, Assembly())


# ---------------------------------------------------------------------------
# Ordering & writing
# ---------------------------------------------------------------------------


def sort_features(features: Iterable[FeatureRecord]) -> List[FeatureRecord]:
    """
    Order by sequence id, then start.

    ``sorted`` is stable, so rows with equal keys keep their input order.
    """
    return sorted(features, key=lambda f: (f.seqid, f.start))


def write_gff3(
    features: Iterable[FeatureRecord],
    handle: TextIO,
    fasta_path: Optional[Path] = None,
) -> int:
    """
    Write sorted features as GFF3; append the input FASTA when given.

    Returns
    -------
    int
        Number of feature rows written.
    """
    rows = sort_features(features)
    handle.write(GFF_VERSION_HEADER + '\n')
    for rec in rows:
        handle.write(rec.to_line() + '\n')
    if fasta_path is not None:
        handle.write(FASTA_DIRECTIVE + '\n')
        with open(fasta_path, 'r', encoding='utf-8') as fh:
            shutil.copyfileobj(fh, handle)
    return len(rows)


def write_bed(intervals: Iterable[IntervalRecord], handle: TextIO) -> None:
    for iv in intervals:
        handle.write(iv.to_line() + '\n')


# ---------------------------------------------------------------------------
# Per-hit summary
# ---------------------------------------------------------------------------

SUMMARY_COLUMNS = [
    'seqid',
    'gene',
    'start',
    'end',
    'strand',
    'length',
    'expected_length',
    'coverage',
    'evalue',
    'disposition',
    'product',
]


def summary_frame(hits: Sequence[ClassifiedHit]) -> pd.DataFrame:
    """One row per hit, rejected ones included, in input order."""
    rows = [
        {
            'seqid': ch.sequence_id,
            'gene': ch.gene_id,
            'start': ch.begin,
            'end': ch.end,
            'strand': ch.strand,
            'length': ch.length,
            'expected_length': ch.expected_length,
            'coverage': round(ch.coverage, 4),
            'evalue': ch.hit.score if ch.hit.score is not None else '.',
            'disposition': ch.disposition.value,
            'product': ch.product,
        }
        for ch in hits
    ]
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def gene_counts(hits: Iterable[ClassifiedHit]) -> Dict[str, int]:
    """Count accepted and partial hits per gene id."""
    counts: Dict[str, int] = {}
    for ch in hits:
        if ch.disposition is Disposition.REJECTED:
            continue
        counts[ch.gene_id] = counts.get(ch.gene_id, 0) + 1
    return counts
