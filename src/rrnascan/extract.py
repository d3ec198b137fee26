#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Extract rRNA sequences from a GFF3 written by ``rrnascan predict``.

Reads a GFF3 (from file or stdin), fetches each ``rRNA`` feature from a
genome FASTA with pyfaidx and writes FASTA to stdout by default (or to a
file via --out-fasta). Minus-strand features are reverse-complemented.
Lines after a ``##FASTA`` directive are ignored.

Examples
--------
    rrnascan predict genome.fna | rrnascan extract -g genome.fna > rrna.fa
    rrnascan extract rrna.gff3 -g genome.fna --out-fasta rrna.fa
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import Dict, Iterable, List, Optional, Sequence, TextIO, Tuple
from urllib.parse import unquote

from rrnascan._version import __version__
from rrnascan.exceptions import InputFormatError, RrnaScanError
from rrnascan.features import BED_SCORE, FASTA_DIRECTIVE, IntervalRecord
from rrnascan.predict import configure_logging
from rrnascan.sequences import extract_intervals, write_fasta


def parse_attrs(attr_field: str) -> Dict[str, str]:
    """Split GFF3 attributes into a dict, percent-decoding the values."""
    out: Dict[str, str] = {}
    for kv in attr_field.strip().split(';'):
        if '=' in kv:
            k, v = kv.split('=', 1)
            out[k] = unquote(v)
    return out


def parse_rrna_gff(
    gff_lines: Iterable[str],
) -> Tuple[List[IntervalRecord], Dict[str, str]]:
    """
    Collect rRNA features as intervals plus their identity -> product map.

    Raises
    ------
    InputFormatError
        On a feature row with non-integer coordinates.
    """
    intervals: List[IntervalRecord] = []
    identities: Dict[str, str] = {}
    for ln in gff_lines:
        if ln.startswith(FASTA_DIRECTIVE):
            break
        if not ln.strip() or ln.startswith('#'):
            continue
        cols = ln.rstrip('\n').split('\t')
        if len(cols) < 9:
            continue
        seqid, _source, ftype, start_s, end_s, _score, strand, _phase, attrs_s = cols[
            :9
        ]
        if ftype != 'rRNA':
            continue
        try:
            start = int(start_s)
            end = int(end_s)
        except ValueError:
            raise InputFormatError(f'bad coordinates in GFF3 line: {ln.rstrip()}') from None
        attrs = parse_attrs(attrs_s)
        name = attrs.get('Name', 'rRNA')
        intervals.append(
            IntervalRecord(
                seqid=seqid,
                start=start - 1,
                end=end,
                name=name,
                score=BED_SCORE,
                strand=strand,
            )
        )
        product = attrs.get('product')
        if product:
            identities[f'{seqid}:{start}-{end}({strand})'] = product
    return intervals, identities


def open_gff_lines(path: str) -> Iterable[str]:
    """Yield lines from a GFF path or stdin."""
    if path == '-' or path is None:
        for ln in sys.stdin:
            yield ln
    else:
        with open(path, 'r', encoding='utf-8') as fh:
            for ln in fh:
                yield ln


def _open_out_handle(path: Optional[str]) -> Tuple[TextIO, bool]:
    """Open output handle (stdout if '-' or empty)."""
    if path in (None, '', '-'):
        return sys.stdout, False
    return open(path, 'w', encoding='utf-8'), True


def build_arg_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    ap = argparse.ArgumentParser(
        description=f'Extract rRNA sequences from rrnascan GFF3 (v{__version__})'
    )
    ap.add_argument(
        'gff', nargs='?', default='-', help="GFF3 path or '-' for stdin (default: '-')"
    )
    ap.add_argument(
        '-g',
        '--genome',
        required=True,
        help='Path to genome FASTA (plain or bgzip-compressed)',
    )
    ap.add_argument(
        '--out-fasta', default='-', help="Output FASTA path (default: '-' = stdout)"
    )
    ap.add_argument(
        '--log-level',
        default='INFO',
        help='Logging level (DEBUG, INFO, WARNING, ERROR)',
    )
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entrypoint."""
    ap = build_arg_parser()
    args = ap.parse_args(argv)

    configure_logging(args.log_level)
    logging.info('rrnascan extract version %s', __version__)
    logging.info('Reading GFF: %s', args.gff)
    logging.info('Genome FASTA: %s', args.genome)

    try:
        intervals, identities = parse_rrna_gff(open_gff_lines(args.gff))
    except RrnaScanError as e:
        logging.error(e.full_message)
        return 1
    logging.info('Parsed %d rRNA feature(s)', len(intervals))

    fai_path = Path(args.genome + '.fai')
    if not fai_path.exists():
        logging.info(
            'No FASTA index found (%s); creating with pyfaidx...', fai_path.name
        )
    records = extract_intervals(Path(args.genome), intervals, identities)

    out_handle, close_out = _open_out_handle(args.out_fasta)
    try:
        write_fasta(records, out_handle)
    finally:
        if close_out:
            out_handle.close()

    logging.info('Wrote %d record(s)', len(records))
    return 0


if __name__ == '__main__':
    try:
        raise SystemExit(main())
    except BrokenPipeError:
        # Allow piping to head/tail without traceback noise
        try:
            sys.stderr.close()
        except Exception:
            pass
        try:
            sys.stdout.close()
        except Exception:
            pass
        raise
