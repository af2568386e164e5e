"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_INDEX_PATH = Path("search_index.js")


@dataclass(slots=True)
class AppConfig:
    index_path: Path = DEFAULT_INDEX_PATH
    max_text_chars: int = 2000
    snippet_chars: int = 160
    limit: int = 10

    def resolve_index_path(self, base_dir: Path | None = None) -> Path:
        if Path(self.index_path).is_absolute() or base_dir is None:
            return Path(self.index_path)
        return base_dir / self.index_path
