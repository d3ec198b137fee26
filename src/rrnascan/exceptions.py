#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Error types raised by rrnascan.

Everything below derives from :class:`RrnaScanError`. Library code raises;
only the command-line entrypoints catch, log and turn the error into a
non-zero exit status.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class RrnaScanError(Exception):
    """Base exception for rrnascan errors."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f'{self.message}\n\nSuggestion: {self.suggestion}'
        return self.message


class ConfigError(RrnaScanError):
    """Raised for invalid option values (non-positive cutoffs, missing database)."""


class InputFormatError(RrnaScanError):
    """Raised when the input sequence file is not FASTA."""


class ToolFailureError(RrnaScanError):
    """Raised when nhmmer output carries a failure signature."""

    def __init__(self, line: str):
        super().__init__(
            message=f'nhmmer failed to run - {line}',
            suggestion='Check the nhmmer installation and the HMM database.',
        )
        self.line = line


class MalformedHitError(RrnaScanError):
    """Raised for a tblout data row without usable coordinates."""

    def __init__(self, fields: Sequence[str]):
        super().__init__(message=f'bad line in nhmmer output - {" ".join(fields)}')
        self.fields: List[str] = list(fields)


class UnknownGeneError(RrnaScanError):
    """Raised when a hit names a gene missing from the length table."""

    def __init__(self, gene_id: str):
        super().__init__(
            message=f'Unknown rRNA gene: {gene_id}',
            suggestion='The HMM database does not match the reference length table.',
        )
        self.gene_id = gene_id


class ToolNotFoundError(RrnaScanError):
    """Raised when a required external tool is not installed or too old."""

    def __init__(self, tool_name: str, install_hint: str = '', detail: str = ''):
        suggestion = f'Install {tool_name} and ensure it is in your PATH.'
        if install_hint:
            suggestion = f'{suggestion}\n\nInstallation:\n  {install_hint}'
        message = f"Required tool '{tool_name}' not found in PATH"
        if detail:
            message = f"Required tool '{tool_name}' is not usable: {detail}"
        super().__init__(message=message, suggestion=suggestion)
        self.tool_name = tool_name


class ToolExecutionError(RrnaScanError):
    """Raised when an external tool returns a non-zero exit code."""

    def __init__(
        self,
        tool_name: str,
        command: Sequence[str],
        return_code: int,
        stderr: str,
    ):
        cmd_str = ' '.join(command)
        if len(cmd_str) > 200:
            cmd_str = cmd_str[:200] + '...'

        stderr_display = stderr.strip()
        if len(stderr_display) > 500:
            stderr_display = stderr_display[:500] + '\n...[truncated]'

        super().__init__(
            message=(
                f'{tool_name} failed with exit code {return_code}\n\n'
                f'Command: {cmd_str}\n\n'
                f'Error output:\n{stderr_display}'
            ),
            suggestion='Check the command parameters and input files.',
        )
        self.tool_name = tool_name
        self.command = list(command)
        self.return_code = return_code
        self.stderr = stderr
