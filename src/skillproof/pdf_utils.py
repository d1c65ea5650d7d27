"""Utilities for extracting markdown from PDF job postings."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Sequence

import pymupdf4llm

# Job-board chrome that carries no information about the role.
_DEFAULT_EXCLUDES: tuple[str, ...] = (
    "Apply now",
    "Apply for this job",
    "Share this job",
    "Save job",
    "Report this job",
)

_PAGE_COUNTER = re.compile(r"^\s*(?:page\s+)?\d+\s*(?:/|of)\s*\d+\s*$", re.IGNORECASE)


def extract_markdown(
    pdf_path: str | Path,
    *,
    exclude_patterns: Sequence[str] | None = None,
) -> str:
    """Return markdown text extracted from a PDF, removing boilerplate lines.

    Parameters
    ----------
    pdf_path:
        Path to the source PDF file.
    exclude_patterns:
        Optional list of string patterns to remove entirely from the output lines.
        Each pattern is matched as a case-insensitive substring and any line
        containing it is dropped. Defaults remove job-board button labels.
        Bare page counters such as ``2 / 5`` or ``Page 2 of 5`` are always dropped.
    """

    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(pdf_path)

    markdown = pymupdf4llm.to_markdown(str(pdf_path))
    excludes = list(exclude_patterns) if exclude_patterns is not None else list(_DEFAULT_EXCLUDES)
    return clean_markdown(markdown, excludes)


def clean_markdown(markdown: str, excludes: Iterable[str] = _DEFAULT_EXCLUDES) -> str:
    patterns = _build_patterns(excludes)
    cleaned_lines: list[str] = []
    for line in markdown.splitlines():
        if not line.strip():
            cleaned_lines.append(line)
            continue
        if _PAGE_COUNTER.match(line) or any(pattern.search(line) for pattern in patterns):
            continue
        cleaned_lines.append(line)
    return "\n".join(cleaned_lines)


def _build_patterns(excludes: Iterable[str]) -> list[re.Pattern[str]]:
    patterns: list[re.Pattern[str]] = []
    for text in excludes:
        escaped = re.escape(text)
        # Allow a page counter suffix like " 1 / 3" after the excluded text.
        patterns.append(re.compile(rf"{escaped}(?:\s+\d+\s*/\s*\d+)?", re.IGNORECASE))
    return patterns


__all__ = ["clean_markdown", "extract_markdown"]
