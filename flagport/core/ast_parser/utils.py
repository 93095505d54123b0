"""AST Parser utilities.

Language detection, parser registry, and directory-walking helpers.
"""

import os
from typing import Dict, Iterator, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .base import BaseLanguageParser

# Extension → language mapping
SUPPORTED_EXTENSIONS: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

# Directories to skip during file walking
SKIP_DIRECTORIES = frozenset({
    "node_modules",
    "bower_components",
    "jspm_packages",
    "dist",
    "build",
    "out",
    "coverage",
    ".next",
    ".nuxt",
    ".git",
    "__pycache__",
    "venv",
    ".venv",
})

# Parser registry — lazy-loaded to avoid import overhead
_parser_registry: Dict[str, "BaseLanguageParser"] = {}


def detect_language(file_path: str) -> Optional[str]:
    """Detect programming language from file extension.

    Declaration files (``.d.ts``) carry no runtime calls and are ignored.

    Args:
        file_path: Path to the source file

    Returns:
        Language identifier string or None if unsupported
    """
    if file_path.lower().endswith(".d.ts"):
        return None
    _, ext = os.path.splitext(file_path)
    return SUPPORTED_EXTENSIONS.get(ext.lower())


def get_parser(language: str) -> "BaseLanguageParser":
    """Get a parser instance for the given language.

    Uses a lazy-initialized registry to avoid loading every grammar
    at startup.

    Args:
        language: Language identifier (e.g., "typescript")

    Returns:
        Parser instance

    Raises:
        ValueError: If language is not supported
    """
    if language not in _parser_registry:
        if language == "javascript":
            from .javascript_parser import JavaScriptParser
            _parser_registry["javascript"] = JavaScriptParser()
        elif language == "typescript":
            from .typescript_parser import TypeScriptParser
            _parser_registry["typescript"] = TypeScriptParser()
        elif language == "tsx":
            from .typescript_parser import TSXParser
            _parser_registry["tsx"] = TSXParser()
        else:
            raise ValueError(
                f"Unsupported language: {language}. "
                f"Supported: {sorted(set(SUPPORTED_EXTENSIONS.values()))}"
            )

    return _parser_registry[language]


def should_skip_directory(dir_name: str) -> bool:
    """Check if a directory should be skipped during file walking.

    Args:
        dir_name: Directory name (not full path)

    Returns:
        True if directory should be skipped
    """
    return dir_name in SKIP_DIRECTORIES or dir_name.startswith(".")


def is_supported_file(file_path: str) -> bool:
    """Check if a file has a supported language extension."""
    return detect_language(file_path) is not None


def iter_source_files(project_root: str) -> Iterator[str]:
    """Yield supported source files under project_root, sorted by relative path.

    Sorting makes discovery order, and therefore report order,
    independent of the file system's directory listing order.
    """
    found = []
    for dirpath, dirnames, filenames in os.walk(project_root):
        dirnames[:] = [d for d in dirnames if not should_skip_directory(d)]
        for name in filenames:
            full = os.path.join(dirpath, name)
            if is_supported_file(full):
                found.append(full)
    root = project_root.rstrip("/")
    for path in sorted(found, key=lambda p: os.path.relpath(p, root)):
        yield path
