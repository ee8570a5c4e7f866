from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath


# Metadata that archivers (mostly macOS Finder) drop into ZIPs.
ARCHIVE_JUNK_PATTERNS = ("__MACOSX/", ".DS_Store", "Thumbs.db")


def _normalize_pattern(pattern: str) -> str:
    normalized = pattern.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _match_pattern(path: str, pattern: str) -> bool:
    if not pattern:
        return False
    # "build/" covers the folder and everything below it, at any depth.
    if pattern.endswith("/"):
        folder = pattern.strip("/")
        return f"/{folder}/" in f"/{path.strip('/')}/"
    entry = PurePosixPath(path.rstrip("/"))
    return entry.match(pattern) or entry.match(f"**/{pattern}")


@dataclass(slots=True)
class PathFilter:
    include_patterns: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.include_patterns and not self.exclude_patterns

    def matches(self, path: str) -> bool:
        if self.include_patterns and not any(
            _match_pattern(path, pattern) for pattern in self.include_patterns
        ):
            return False
        return not any(_match_pattern(path, pattern) for pattern in self.exclude_patterns)


def _clean(patterns: list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    cleaned: list[str] = []
    for pattern in patterns or ():
        normalized = _normalize_pattern(pattern) if pattern else ""
        if normalized and normalized not in cleaned:
            cleaned.append(normalized)
    return tuple(cleaned)


def build_path_filter(
    include_patterns: list[str] | tuple[str, ...] | None = None,
    exclude_patterns: list[str] | tuple[str, ...] | None = None,
    *,
    skip_junk: bool = False,
) -> PathFilter:
    exclude = _clean(exclude_patterns)
    if skip_junk:
        exclude += tuple(pattern for pattern in ARCHIVE_JUNK_PATTERNS if pattern not in exclude)
    return PathFilter(include_patterns=_clean(include_patterns), exclude_patterns=exclude)
