#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from __future__ import annotations

import sys
from pathlib import Path
from textwrap import dedent

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from vx_context import CompilationContext, GrammarRevision, LogLevel
from vx_driver import VertexDriver


@pytest.fixture
def repo_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def temp_project(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def write_vx_file(temp_project: Path):
    """Write Vertex source (dedented) under the temp project.

    Usage:
        def test_something(write_vx_file):
            path = write_vx_file("app/main", '''
                Main = mod {
                }
            ''')
    """

    def _write(rel_name: str, content: str) -> Path:
        file_path = temp_project.joinpath(*rel_name.split("/")).with_suffix(".vx")
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(dedent(content), encoding="utf-8")
        return file_path

    return _write


@pytest.fixture
def legacy_context() -> CompilationContext:
    return CompilationContext(grammar_revision=GrammarRevision.LEGACY)


@pytest.fixture
def parse_single():
    """Parse a single in-memory source unit through the driver.

    Usage:
        def test_something(parse_single):
            result = parse_single('''
                M = mod {
                }
            ''')
            assert not result.has_errors()
    """

    def _parse(src: str, context: CompilationContext | None = None):
        driver = VertexDriver(context or CompilationContext(log_level=LogLevel.SILENT))
        return driver.parse_source(dedent(src), filename="main.vx")

    return _parse


def has_error_code(diagnostics, code: str) -> bool:
    """Check if any diagnostic contains the given error code.

    Args:
        diagnostics: List of Diagnostic objects
        code: Error code string like "PAR-0090" or "[PAR-0090]"

    Returns:
        True if any diagnostic message contains the error code
    """
    if not code.startswith("["):
        code = f"[{code}]"
    return any(code in d.message for d in diagnostics)
