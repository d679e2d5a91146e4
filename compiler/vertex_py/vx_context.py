"""
Parsing context for cross-cutting front-end options.

This module defines the CompilationContext dataclass which holds options that
affect more than one stage of the front end (lexing, parsing, diagnostics).
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from enum import Enum, IntEnum


class LogLevel(IntEnum):
    """Hierarchical logging levels for the Vertex front end."""
    SILENT = 0      # No logging
    ERROR = 3       # Error messages only
    WARNING = 6     # Warning messages (default)
    INFO = 10       # General progress messages
    DEBUG = 30      # Detailed diagnostic information


class GrammarRevision(Enum):
    """Which revision of the surface grammar a parse follows."""
    LEGACY = "legacy"          # newlines are plain whitespace, no EndLine, no `extern` calls
    CANONICAL = "canonical"    # newlines terminate statements (EndLine)


DEFAULT_MAX_NESTING_DEPTH = 100


@dataclass
class CompilationContext:
    """
    Holds cross-cutting options that affect multiple front-end stages.

    Attributes:
        grammar_revision:   Grammar revision used for lexing and parsing.
        max_nesting_depth:  Maximum nesting of modules, functions, structs, parenthesized
                            expressions, call argument lists and tuple/map types. Deeper
                            input fails with a RecursionLimitError.
        log_rich_format:    If True, emit logs in rich format: may include log level, timestamps, etc.
        log_level:          Current logging level.
    """
    grammar_revision: GrammarRevision = GrammarRevision.CANONICAL
    max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH
    log_rich_format: bool = False
    log_level: LogLevel = LogLevel.WARNING

    @staticmethod
    def default() -> 'CompilationContext':
        """Create a CompilationContext with default settings."""
        return CompilationContext(log_level=LogLevel.WARNING)

    @property
    def newlines_significant(self) -> bool:
        return self.grammar_revision is GrammarRevision.CANONICAL
