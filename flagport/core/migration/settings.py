"""Typed view of the ``flagport`` configuration section."""

from dataclasses import dataclass
from typing import Optional

from ..config.config_loader import get_config_value


@dataclass
class MigrationSettings:
    # scan
    file_timeout_seconds: float = 10.0
    max_workers: int = 4
    fail_on_syntax_errors: bool = False
    # classify
    pragma_window_lines: int = 3
    name_similarity_min_tokens: int = 2
    # rewrite
    placeholder_client_id: str = "YOUR_LAUNCHDARKLY_CLIENT_SIDE_ID"
    singleton_client_identifier: str = "ldClient"
    wait_for_initialization_seconds: int = 5
    rewrite_low_confidence: bool = False
    # output
    summary_file: str = "migration-summary.json"
    staging_dir: Optional[str] = None

    @classmethod
    def from_config(cls) -> "MigrationSettings":
        """Read ``config/flagport.yaml``, falling back to the defaults above."""
        d = cls()

        def value(section: str, key: str, default):
            return get_config_value("flagport", section, key, default=default)

        return cls(
            file_timeout_seconds=float(value("scan", "file_timeout_seconds", d.file_timeout_seconds)),
            max_workers=max(1, int(value("scan", "max_workers", d.max_workers))),
            fail_on_syntax_errors=bool(value("scan", "fail_on_syntax_errors", d.fail_on_syntax_errors)),
            pragma_window_lines=int(value("classify", "pragma_window_lines", d.pragma_window_lines)),
            name_similarity_min_tokens=int(
                value("classify", "name_similarity_min_tokens", d.name_similarity_min_tokens)
            ),
            placeholder_client_id=str(value("rewrite", "placeholder_client_id", d.placeholder_client_id)),
            singleton_client_identifier=str(
                value("rewrite", "singleton_client_identifier", d.singleton_client_identifier)
            ),
            wait_for_initialization_seconds=int(
                value("rewrite", "wait_for_initialization_seconds", d.wait_for_initialization_seconds)
            ),
            rewrite_low_confidence=bool(value("rewrite", "rewrite_low_confidence", d.rewrite_low_confidence)),
            summary_file=str(value("output", "summary_file", d.summary_file)),
            staging_dir=value("output", "staging_dir", None),
        )
