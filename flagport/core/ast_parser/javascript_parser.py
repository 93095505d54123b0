"""JavaScript AST parser using tree-sitter.

The tree-sitter-javascript grammar covers JSX as well, so React sources
(.jsx) go through this parser too.
"""

import logging

import tree_sitter
import tree_sitter_javascript

from .base import BaseLanguageParser

logger = logging.getLogger(__name__)

_JS_LANGUAGE = tree_sitter.Language(tree_sitter_javascript.language())


class JavaScriptParser(BaseLanguageParser):
    """tree-sitter based JavaScript (and JSX) parser."""

    def get_language(self) -> str:
        return "javascript"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _JS_LANGUAGE
