"""TypeScript AST parsers using tree-sitter.

Two grammars ship in tree-sitter-typescript: plain TypeScript and TSX.
They differ only in JSX support, so TSXParser just swaps the language.
"""

import logging

import tree_sitter
import tree_sitter_typescript

from .base import BaseLanguageParser

logger = logging.getLogger(__name__)

_TS_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_typescript())
_TSX_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_tsx())


class TypeScriptParser(BaseLanguageParser):
    """tree-sitter based TypeScript parser.

    ``import type`` declarations come out as ordinary import_statement
    nodes; the scanner's import table tells them apart.
    """

    def get_language(self) -> str:
        return "typescript"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _TS_LANGUAGE


class TSXParser(TypeScriptParser):
    """TypeScript with JSX (.tsx)."""

    def get_language(self) -> str:
        return "tsx"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _TSX_LANGUAGE
