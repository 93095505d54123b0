"""AST Parser data models.

Defines the data structures handed from the tree-sitter front end to the
migration scanner. These are pure data containers — no parsing logic.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import tree_sitter


@dataclass
class ParseError:
    """An error encountered during parsing."""

    file_path: str
    line: int
    message: str
    severity: str = "warning"  # "warning" | "error"


@dataclass
class ParsedFile:
    """Complete parse output for a single source file.

    Holds the raw bytes the tree was built from so that byte ranges
    reported by the scanner can be spliced back into the exact source.
    """

    file_path: str  # Relative path within project
    language: str  # "javascript" | "typescript" | "tsx"
    source: bytes
    digest: str  # sha256 of source, checked again before writing patches
    tree: Optional[tree_sitter.Tree]
    line_count: int = 0
    has_syntax_errors: bool = False
    errors: List[ParseError] = field(default_factory=list)

    def text(self, start_byte: int, end_byte: int) -> str:
        return self.source[start_byte:end_byte].decode("utf-8")
