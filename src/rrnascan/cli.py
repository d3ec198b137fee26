#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
rrnascan CLI entrypoint.

Subcommands
-----------
- rrnascan predict  -> find rRNA genes with nhmmer and write GFF3 (rrnascan.predict)
- rrnascan extract  -> pull rRNA sequences out of a GFF3 (rrnascan.extract)

All arguments after the subcommand are forwarded unchanged to the corresponding
module's `main(argv)` function.

Examples
--------
    rrnascan predict --help
    rrnascan extract --help

    # Typical usage
    rrnascan predict --kingdom bac genome.fna > rrna.gff3
    rrnascan extract rrna.gff3 -g genome.fna > rrna.fa
"""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Optional, Sequence

from rrnascan._version import __version__


def _load_main(name: str) -> Callable[[Sequence[str]], int]:
    """
    Import and return rrnascan.<name>.main.
    """
    if name == 'predict':
        from rrnascan.predict import main as sub_main
    else:
        from rrnascan.extract import main as sub_main
    if not callable(sub_main):
        raise TypeError(f'rrnascan.{name}.main is not callable')
    return sub_main


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser that selects a subcommand."""
    parser = argparse.ArgumentParser(
        prog='rrnascan',
        description='Ribosomal RNA prediction with nhmmer.',
        epilog="Use 'rrnascan predict --help' or 'rrnascan extract --help' for subcommand options.",
        add_help=True,
    )
    parser.add_argument(
        '--version', action='version', version=f'rrnascan {__version__}'
    )
    subparsers = parser.add_subparsers(
        dest='command',
        metavar='{predict,extract}',
        required=True,
        help='Subcommand to run',
    )

    # Minimal subparsers; actual options belong to the downstream tools.
    subparsers.add_parser(
        'predict',
        help='Predict rRNA genes in a FASTA and emit sorted GFF3.',
        add_help=False,  # let rrnascan.predict handle its own --help
    )
    subparsers.add_parser(
        'extract',
        help='Extract rRNA sequences from rrnascan GFF3.',
        add_help=False,  # let rrnascan.extract handle its own --help
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Entrypoint. Parse the subcommand token and forward remaining args.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    # Only parse the subcommand; forward the rest (including --help) to the sub-tool.
    args, remainder = parser.parse_known_args(argv)

    if args.command in ('predict', 'extract'):
        try:
            sub_main = _load_main(args.command)
        except TypeError as e:
            print(str(e), file=sys.stderr)
            return 2
        return int(sub_main(remainder))

    # Should not happen (subparsers.required=True), but keep a fallback:
    parser.print_usage(sys.stderr)
    return 2


if __name__ == '__main__':
    raise SystemExit(main())
