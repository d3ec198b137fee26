#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Predict ribosomal RNA genes in a FASTA with nhmmer and write GFF3.

Pipeline
--------
1. Run ``nhmmer`` with the kingdom HMM database (or read an existing
   ``--tblout`` table).
2. Parse every tabular row; comment and blank lines are skipped, failure
   signatures and malformed rows abort the run.
3. Classify each hit against the canonical gene length:
   rejected (< --reject), partial (< --lencutoff) or accepted.
4. Write accepted and partial hits as GFF3 ``rRNA`` features sorted by
   sequence id and start (stdout by default).

Optional outputs
----------------
- ``--incseq``  : append the input FASTA after a ``##FASTA`` line.
- ``--outseq``  : write hit sequences (bedtools getfasta, or pyfaidx).
- ``--out-tsv`` : per-hit summary table including rejected hits.

Examples
--------
    rrnascan predict genome.fna > rrna.gff3
    rrnascan predict --kingdom arc --threads 8 --outseq rrna.fa genome.fna
    cat genome.fna | rrnascan predict --incseq - > rrna_with_seq.gff3
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
import sys
import tempfile
from typing import List, Optional, Sequence, TextIO, Tuple

from rrnascan._version import __version__
from rrnascan import features, hits, reference, sequences, tools
from rrnascan.exceptions import ConfigError, RrnaScanError

DEFAULT_DB_DIR = Path(__file__).resolve().parent / 'db'


# ---------------------------------------------------------------------------
# CLI / main
# ---------------------------------------------------------------------------


def configure_logging(level: str = 'INFO') -> None:
    """
    Configure root logger with a standard format (logs to stderr).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s [%(levelname)s] %(message)s',
        stream=sys.stderr,
        force=True,
    )


def build_arg_parser() -> argparse.ArgumentParser:
    """
    Build the command-line interface parser.
    """
    ap = argparse.ArgumentParser(
        description=(
            f'Predict ribosomal RNA genes with nhmmer and write GFF3. Version {__version__}'
        )
    )
    ap.add_argument(
        'fasta',
        nargs='?',
        default='-',
        help="Input FASTA path or '-' for stdin (default: '-')",
    )
    ap.add_argument(
        '--kingdom',
        choices=list(reference.KINGDOMS),
        default='bac',
        help='Kingdom database: '
        + ', '.join(f'{k} ({v})' for k, v in reference.KINGDOMS.items())
        + ' (default: bac)',
    )
    ap.add_argument(
        '--threads', type=int, default=1, help='Number of nhmmer threads (default: 1)'
    )
    ap.add_argument(
        '--evalue',
        type=float,
        default=1e-6,
        help='Similarity e-value cut-off (default: 1e-06)',
    )
    ap.add_argument(
        '--lencutoff',
        type=float,
        default=hits.DEFAULT_LENCUTOFF,
        help='Proportional length threshold to label as partial (default: 0.8)',
    )
    ap.add_argument(
        '--reject',
        type=float,
        default=hits.DEFAULT_REJECT_CUTOFF,
        help='Proportional length threshold to reject prediction (default: 0.25)',
    )
    ap.add_argument(
        '--incseq',
        action='store_true',
        help='Include FASTA input sequences in GFF3 output',
    )
    ap.add_argument(
        '--outseq',
        default=None,
        help='Save rRNA hit sequences to this FASTA file',
    )
    ap.add_argument(
        '--extractor',
        choices=['bedtools', 'pyfaidx'],
        default='bedtools',
        help='Backend used for --outseq (default: bedtools)',
    )
    ap.add_argument(
        '--db-dir',
        default=os.environ.get('RRNASCAN_DB', str(DEFAULT_DB_DIR)),
        help='Directory holding <kingdom>.hmm files (default: $RRNASCAN_DB or bundled db/)',
    )
    ap.add_argument(
        '--tblout',
        default=None,
        help='Use an existing nhmmer --tblout file instead of running nhmmer',
    )
    ap.add_argument(
        '--out-gff3',
        default='-',
        help="Output GFF3 path (default: '-' = stdout)",
    )
    ap.add_argument(
        '--out-tsv',
        default=None,
        help='Write a per-hit summary TSV (all hits, including rejected) to this path',
    )
    ap.add_argument(
        '--quiet',
        action='store_true',
        help='No screen output (same as --log-level ERROR)',
    )
    ap.add_argument(
        '--log-level',
        default='INFO',
        help='Logging level (DEBUG, INFO, WARNING, ERROR; default: INFO)',
    )
    return ap


def needs_fasta(args: argparse.Namespace) -> bool:
    """True unless a --tblout table is given and no option reads sequences."""
    return not args.tblout or args.incseq or bool(args.outseq)


def validate_args(args: argparse.Namespace) -> None:
    """Reject non-positive numeric options before any tool runs."""
    checks = (
        ('--threads', args.threads),
        ('--evalue', args.evalue),
        ('--lencutoff', args.lencutoff),
        ('--reject', args.reject),
    )
    for opt, value in checks:
        if not value > 0:
            raise ConfigError(f'Invalid {opt} value: {value} (must be > 0)')
    if needs_fasta(args) and args.fasta == '-' and args.tblout == '-':
        raise ConfigError('stdin cannot be used for both the FASTA and --tblout')


def _open_out_handle(path: Optional[str], default: TextIO) -> Tuple[TextIO, bool]:
    """
    Return a writable handle and whether we own/should close it.
    """
    if path is None or path == '-' or path == '':
        return default, False
    fh = open(path, 'w', encoding='utf-8')
    return fh, True


def read_hit_table(args: argparse.Namespace, fasta: Optional[Path]) -> List[str]:
    """Return nhmmer tabular lines, running nhmmer unless --tblout is given."""
    if args.tblout:
        logging.info('Reading nhmmer table: %s', args.tblout)
        if args.tblout == '-':
            return sys.stdin.read().splitlines()
        if not Path(args.tblout).exists():
            raise ConfigError(f'nhmmer table not found: {args.tblout}')
        with open(args.tblout, 'r', encoding='utf-8') as fh:
            return fh.read().splitlines()

    db = reference.kingdom_database(Path(args.db_dir), args.kingdom)
    tools.check_nhmmer_version()
    window = reference.max_window_length()
    logging.info('Using database: %s', db)
    logging.info(
        'Scanning %s for %s rRNA genes... please wait',
        fasta,
        reference.KINGDOMS[args.kingdom],
    )
    logging.info(
        'Command: %s',
        ' '.join(tools.nhmmer_command(db, fasta, args.threads, args.evalue, window)),
    )
    return tools.run_nhmmer(db, fasta, args.threads, args.evalue, window)


def write_hit_sequences(
    args: argparse.Namespace,
    fasta: Path,
    assembly: features.Assembly,
) -> None:
    """Write --outseq with the chosen extractor."""
    logging.info('Writing hit sequences to: %s', args.outseq)
    out = Path(args.outseq)
    if args.extractor == 'pyfaidx':
        records = sequences.extract_intervals(
            fasta, assembly.intervals, assembly.identities
        )
        with open(out, 'w', encoding='utf-8') as fh:
            sequences.write_fasta(records, fh)
        return

    with tempfile.NamedTemporaryFile(
        'w', suffix='.bed', prefix='rrnascan_', delete=False
    ) as bed:
        features.write_bed(assembly.intervals, bed)
    try:
        tools.bedtools_getfasta(fasta, Path(bed.name), out)
    finally:
        os.unlink(bed.name)
    n = sequences.relabel_fasta(out, assembly.identities)
    logging.debug('Labelled %d extracted sequence(s)', n)


def run(args: argparse.Namespace) -> int:
    """Run the whole prediction; raises RrnaScanError on fatal problems."""
    validate_args(args)

    spooled: Optional[Path] = None
    fasta: Optional[Path] = None
    try:
        if needs_fasta(args):
            if args.fasta == '-':
                logging.info('Reading sequences from stdin')
                spooled = sequences.spool_stdin(sys.stdin)
                fasta = spooled
            else:
                fasta = Path(args.fasta)
                if not fasta.exists():
                    raise ConfigError(f'Input file not found: {fasta}')
            sequences.looks_like_fasta(fasta)

        lines = read_hit_table(args, fasta)

        classified = list(
            hits.classify_all(
                hits.iter_hits(lines),
                reject_cutoff=args.reject,
                lencutoff=args.lencutoff,
            )
        )
        source = f'rrnascan:{__version__}'
        assembly = features.assemble(classified, source)

        counts = features.gene_counts(classified)
        for gene in sorted(counts):
            logging.info('Found %d %s', counts[gene], gene)
        n_rejected = sum(
            1 for ch in classified if ch.disposition is hits.Disposition.REJECTED
        )
        if n_rejected:
            logging.info('Rejected %d short hit(s)', n_rejected)

        if args.out_tsv:
            features.summary_frame(classified).to_csv(
                args.out_tsv, sep='\t', index=False
            )
            logging.info('Wrote TSV summary: %s', args.out_tsv)

        logging.info('Sorting features and outputting GFF3...')
        out, close_me = _open_out_handle(args.out_gff3, sys.stdout)
        try:
            features.write_gff3(
                assembly.features, out, fasta_path=fasta if args.incseq else None
            )
        finally:
            if close_me:
                out.close()

        if args.outseq:
            write_hit_sequences(args, fasta, assembly)
    finally:
        if spooled is not None:
            spooled.unlink(missing_ok=True)

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI entrypoint.

    Returns
    -------
    int
        Exit status code.
    """
    ap = build_arg_parser()
    args = ap.parse_args(argv)

    configure_logging('ERROR' if args.quiet else args.log_level)
    logging.info('rrnascan version %s', __version__)

    try:
        rc = run(args)
    except RrnaScanError as e:
        logging.error(e.full_message)
        return 1

    logging.info('Done.')
    return rc


if __name__ == '__main__':
    try:
        raise SystemExit(main())
    except BrokenPipeError:
        # allow piping into head/tail without noisy tracebacks
        try:
            sys.stderr.close()
        except Exception:
            pass
        try:
            sys.stdout.close()
        except Exception:
            pass
        raise
