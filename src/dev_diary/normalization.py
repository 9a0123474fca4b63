"""Utilities to normalize editor context reported with signals."""

from __future__ import annotations

import re
from typing import Optional

_COMMENT_PREFIXES: tuple[str, ...] = ("//", "/*", "#")


def normalize_language(language: Optional[str], fallback: str) -> str:
    """Return a lowercase language id, or ``fallback`` when none was reported."""
    if not language:
        return fallback
    normalized = language.strip().lower()
    if not normalized:
        return fallback
    return normalized


def normalize_workspace(workspace: Optional[str], fallback: str) -> str:
    """Collapse whitespace in a workspace name, or return ``fallback``."""
    if not workspace:
        return fallback
    normalized = re.sub(r"\s{2,}", " ", workspace).strip()
    return normalized or fallback


def is_comment_line(line_text: str) -> bool:
    return line_text.strip().startswith(_COMMENT_PREFIXES)
