"""Base interface for language-specific AST parsers.

Defines the Strategy pattern base class that all language parsers implement.
Shared parsing logic lives here; language-specific details are delegated.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import List

import tree_sitter

from ..exceptions import SourceReadError
from .models import ParseError, ParsedFile

logger = logging.getLogger(__name__)


class BaseLanguageParser(ABC):
    """Abstract base for language-specific tree-sitter parsers.

    Subclasses implement:
    - get_language(): returns language name string
    - get_tree_sitter_language(): returns tree-sitter Language object
    """

    @abstractmethod
    def get_language(self) -> str:
        """Return the language identifier (e.g., 'javascript', 'tsx')."""
        ...

    @abstractmethod
    def get_tree_sitter_language(self) -> tree_sitter.Language:
        """Return the tree-sitter Language object for this language."""
        ...

    def parse_file(self, file_path: str, project_root: str = "") -> ParsedFile:
        """Parse a source file into a ParsedFile.

        The file is read as bytes so that byte offsets in the tree match
        the file on disk exactly.

        Args:
            file_path: Absolute path to the source file
            project_root: Project root for computing relative paths

        Returns:
            ParsedFile with tree and metadata

        Raises:
            SourceReadError: If the file cannot be read or is not UTF-8
        """
        # Compute relative path
        if project_root and file_path.startswith(project_root):
            rel_path = file_path[len(project_root):].lstrip("/")
        else:
            rel_path = file_path

        try:
            with open(file_path, "rb") as f:
                source_bytes = f.read()
        except OSError as e:
            raise SourceReadError(rel_path, str(e)) from e

        return self.parse_bytes(source_bytes, rel_path)

    def parse_source(self, source_text: str, file_path: str) -> ParsedFile:
        """Parse source code string into a ParsedFile.

        Args:
            source_text: Source code as string
            file_path: Relative file path (for metadata)

        Returns:
            ParsedFile with tree and metadata
        """
        return self.parse_bytes(source_text.encode("utf-8"), file_path)

    def parse_bytes(self, source_bytes: bytes, file_path: str) -> ParsedFile:
        errors: List[ParseError] = []

        try:
            source_text = source_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SourceReadError(file_path, f"not valid UTF-8: {e}") from e

        line_count = source_text.count("\n") + (1 if source_text and not source_text.endswith("\n") else 0)

        # Create parser and parse
        parser = tree_sitter.Parser(self.get_tree_sitter_language())
        tree = parser.parse(source_bytes)

        # Check for parse errors
        has_syntax_errors = tree.root_node.has_error
        if has_syntax_errors:
            errors.append(
                ParseError(
                    file_path=file_path,
                    line=self._first_error_line(tree.root_node),
                    message="Tree-sitter reported parse errors in file",
                    severity="warning",
                )
            )
            logger.debug(f"Syntax errors in {file_path} (first near line {errors[-1].line})")

        return ParsedFile(
            file_path=file_path,
            language=self.get_language(),
            source=source_bytes,
            digest=hashlib.sha256(source_bytes).hexdigest(),
            tree=tree,
            line_count=line_count,
            has_syntax_errors=has_syntax_errors,
            errors=errors,
        )

    @staticmethod
    def _first_error_line(root: tree_sitter.Node) -> int:
        """Return the 1-based line of the first ERROR or MISSING node."""
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "ERROR" or node.is_missing:
                return node.start_point.row + 1
            if node.has_error:
                stack.extend(reversed(node.children))
        return 0
