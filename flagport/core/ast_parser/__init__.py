"""flagport AST front end — tree-sitter based JavaScript/TypeScript parsing.

Public API:
    parse_file(path, project_root) → ParsedFile
    parse_source(source, file_path, language) → ParsedFile
    detect_language(file_path) → str | None
"""

from .models import ParseError, ParsedFile
from .utils import (
    detect_language,
    get_parser,
    is_supported_file,
    iter_source_files,
    should_skip_directory,
)

__all__ = [
    "parse_file",
    "parse_source",
    "detect_language",
    "is_supported_file",
    "iter_source_files",
    "should_skip_directory",
    "ParseError",
    "ParsedFile",
]


def parse_file(file_path: str, project_root: str = "") -> ParsedFile:
    """Parse a source file into a ParsedFile.

    Detects language from file extension and uses the appropriate
    tree-sitter parser.

    Args:
        file_path: Absolute path to the source file
        project_root: Project root for computing relative paths

    Returns:
        ParsedFile containing the tree and raw source

    Raises:
        ValueError: If the file extension is not supported
        SourceReadError: If the file cannot be read or decoded
    """
    language = detect_language(file_path)
    if not language:
        raise ValueError(f"Unsupported file type: {file_path}")
    return get_parser(language).parse_file(file_path, project_root)


def parse_source(source_text: str, file_path: str, language: str | None = None) -> ParsedFile:
    """Parse source code string into a ParsedFile.

    Args:
        source_text: Source code as string
        file_path: Relative file path (for metadata)
        language: Language identifier. If None, detected from file_path.

    Returns:
        ParsedFile containing the tree and raw source
    """
    if language is None:
        language = detect_language(file_path)
    if not language:
        raise ValueError(f"Unsupported file type: {file_path}")
    return get_parser(language).parse_source(source_text, file_path)
