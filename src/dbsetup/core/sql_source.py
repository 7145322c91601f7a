"""SQL script loading and statement splitting.

Splitting is a plain split on ``;``. Semicolons inside string literals
or function bodies are not understood, so scripts that need them must
hold a single statement.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dbsetup.core.exceptions import InputError

if TYPE_CHECKING:
    from pathlib import Path

COMMENT_MARKER = "--"


def load_sql_script(scripts_dir: Path, filename: str) -> str:
    """Read a SQL script from the scripts directory.

    Raises InputError when the file does not exist.
    """
    path = scripts_dir / filename
    if not path.is_file():
        msg = f"SQL file not found: {path}"
        raise InputError(msg)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read SQL file {path}: {e}"
        raise InputError(msg) from e


def split_statements(sql: str) -> list[str]:
    """Split SQL text into trimmed statements.

    Empty chunks and chunks starting with a comment marker are dropped.
    """
    return [
        chunk
        for chunk in (part.strip() for part in sql.split(";"))
        if chunk and not chunk.startswith(COMMENT_MARKER)
    ]


def is_blank(sql: str) -> bool:
    """True when the script holds only whitespace, semicolons and line comments."""
    for line in sql.splitlines():
        text = line.strip().strip(";").strip()
        if text and not text.startswith(COMMENT_MARKER):
            return False
    return True
