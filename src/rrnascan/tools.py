#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Subprocess wrappers for nhmmer and bedtools.

Commands are built as argument lists and run without a shell. Any
non-zero exit raises :class:`ToolExecutionError`; nothing is retried.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import re
import shutil
import subprocess
import time
from typing import List, Sequence, Tuple

from rrnascan.exceptions import ToolExecutionError, ToolNotFoundError

NHMMER = 'nhmmer'
BEDTOOLS = 'bedtools'

INSTALL_HINTS = {
    NHMMER: 'conda install -c bioconda hmmer',
    BEDTOOLS: 'conda install -c bioconda bedtools',
}

MIN_NHMMER_VERSION: Tuple[int, int] = (3, 1)

_RE_HMMER_VERSION = re.compile(r'HMMER\s+(\d+)\.(\d+)')


@dataclass(frozen=True)
class ToolResult:
    """Result from running an external tool."""

    command: Tuple[str, ...]
    return_code: int
    stdout: str
    stderr: str
    elapsed_seconds: float

    @property
    def success(self) -> bool:
        return self.return_code == 0

    @property
    def command_string(self) -> str:
        return ' '.join(self.command)


def find_executable(name: str) -> Path:
    """Locate ``name`` on PATH or raise :class:`ToolNotFoundError`."""
    exe = shutil.which(name)
    if not exe:
        raise ToolNotFoundError(name, INSTALL_HINTS.get(name, ''))
    return Path(exe)


def run_command(command: Sequence[str], tool_name: str) -> ToolResult:
    """Run ``command`` to completion, capturing output."""
    logging.debug('Running: %s', ' '.join(command))
    start = time.perf_counter()
    try:
        proc = subprocess.run(list(command), capture_output=True, text=True)
    except FileNotFoundError as e:
        raise ToolNotFoundError(tool_name, INSTALL_HINTS.get(tool_name, '')) from e
    result = ToolResult(
        command=tuple(command),
        return_code=proc.returncode,
        stdout=proc.stdout,
        stderr=proc.stderr,
        elapsed_seconds=time.perf_counter() - start,
    )
    if not result.success:
        raise ToolExecutionError(tool_name, command, result.return_code, result.stderr)
    logging.debug('%s finished in %.1fs', tool_name, result.elapsed_seconds)
    return result


# ---------------------------------------------------------------------------
# nhmmer
# ---------------------------------------------------------------------------


def parse_hmmer_version(text: str) -> Tuple[int, int]:
    """Return (major, minor) from ``nhmmer -h`` output, or (0, 0)."""
    m = _RE_HMMER_VERSION.search(text)
    if not m:
        return 0, 0
    return int(m.group(1)), int(m.group(2))


def check_nhmmer_version() -> Tuple[int, int]:
    """Ensure nhmmer is installed and at least HMMER 3.1."""
    exe = find_executable(NHMMER)
    result = run_command([str(exe), '-h'], NHMMER)
    version = parse_hmmer_version(result.stdout)
    if version < MIN_NHMMER_VERSION:
        raise ToolNotFoundError(
            NHMMER,
            INSTALL_HINTS[NHMMER],
            detail=f'need HMMER >= 3.1, found {version[0]}.{version[1]}',
        )
    logging.info('Found nhmmer from HMMER %d.%d', *version)
    return version


def nhmmer_command(
    db: Path,
    fasta: Path,
    threads: int,
    evalue: float,
    window: int,
    executable: str = NHMMER,
) -> List[str]:
    """Build the nhmmer call that writes the hit table to stdout."""
    return [
        executable,
        '--cpu',
        str(threads),
        '-E',
        f'{evalue:g}',
        '--w_length',
        str(window),
        '-o',
        '/dev/null',
        '--tblout',
        '/dev/stdout',
        str(db),
        str(fasta),
    ]


def run_nhmmer(
    db: Path,
    fasta: Path,
    threads: int,
    evalue: float,
    window: int,
) -> List[str]:
    """Run nhmmer and return its tabular output lines."""
    exe = find_executable(NHMMER)
    cmd = nhmmer_command(db, fasta, threads, evalue, window, executable=str(exe))
    result = run_command(cmd, NHMMER)
    return result.stdout.splitlines()


# ---------------------------------------------------------------------------
# bedtools
# ---------------------------------------------------------------------------


def bedtools_getfasta_command(
    fasta: Path, bed: Path, out: Path, executable: str = BEDTOOLS
) -> List[str]:
    return [
        executable,
        'getfasta',
        '-s',
        '-name+',
        '-fo',
        str(out),
        '-fi',
        str(fasta),
        '-bed',
        str(bed),
    ]


def bedtools_getfasta(fasta: Path, bed: Path, out: Path) -> ToolResult:
    """Extract stranded BED intervals from ``fasta`` into ``out``."""
    exe = find_executable(BEDTOOLS)
    return run_command(
        bedtools_getfasta_command(fasta, bed, out, executable=str(exe)), BEDTOOLS
    )
