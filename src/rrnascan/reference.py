#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Canonical rRNA gene lengths and the kingdom databases they belong to."""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from rrnascan.exceptions import ConfigError, UnknownGeneError

# fmt: off
GENE_LENGTHS: Mapping[str, int] = MappingProxyType({
    # Bacteria
    '5S_rRNA': 119,
    '16S_rRNA': 1585,
    '23S_rRNA': 3232,
    # Archaea
    '5_8S_rRNA': 156,
    # Eukaryotes
    '18S_rRNA': 1869,
    '28S_rRNA': 2912,
    # Mitochondria
    '12S_rRNA': 954,
})
# fmt: on

KINGDOMS: Mapping[str, str] = MappingProxyType(
    {
        'bac': 'Bacteria',
        'arc': 'Archaea',
        'euk': 'Eukaryota',
        'mito': 'Metazoan Mitochondria',
    }
)


def expected_length(gene_id: str, table: Mapping[str, int] = GENE_LENGTHS) -> int:
    """Return the canonical length of ``gene_id``.

    Raises
    ------
    UnknownGeneError
        If the gene is not in ``table``.
    """
    try:
        return table[gene_id]
    except KeyError:
        raise UnknownGeneError(gene_id) from None


def max_window_length(table: Mapping[str, int] = GENE_LENGTHS) -> int:
    """Largest expected hit window (120% of the longest gene)."""
    return int(1.2 * max(table.values()))


def kingdom_database(db_dir: Path, kingdom: str) -> Path:
    """Return ``<db_dir>/<kingdom>.hmm``, checking that it exists."""
    if kingdom not in KINGDOMS:
        raise ConfigError(
            f"Unknown kingdom '{kingdom}'",
            suggestion=f'Choose one of: {", ".join(KINGDOMS)}',
        )
    db = Path(db_dir) / f'{kingdom}.hmm'
    if not db.exists():
        raise ConfigError(
            f"Can't find database: {db}",
            suggestion='Point --db-dir (or RRNASCAN_DB) at the directory holding the .hmm files.',
        )
    return db
