"""Heuristic entity and keyword extraction from script text.

Everything here is plain string matching. The functions never fail and
return at most ``count`` items; callers supply their own fallback when an
extractor comes back empty.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

_TITLE_CASE_NAME = re.compile(r"\b[A-Z][a-z]{2,}\b")
_ALL_CAPS_NAME = re.compile(r"\b[A-Z][A-Z]{2,}\b")
_LINE_BREAKS = re.compile(r"\n+")

MAX_BIBLE_NAMES = 6
MAX_CANDIDATE_LINES = 40
MIN_LINE_LENGTH = 20

ENVIRONMENT_KEYWORDS: tuple[str, ...] = (
    "forest",
    "city",
    "village",
    "temple",
    "school",
    "room",
    "street",
    "castle",
    "river",
    "mountain",
    "beach",
    "market",
)

NATURE_KEYWORDS: tuple[str, ...] = (
    "rain",
    "wind",
    "storm",
    "sunset",
    "dawn",
    "night",
    "tree",
    "leaf",
    "ocean",
    "mist",
    "snow",
    "cloud",
)

GENERIC_CONTINUITY = (
    "Maintain visual continuity for recurring protagonists, wardrobe, "
    "and emotional expression across all scenes."
)


def _unique(items: Iterable[str]) -> list[str]:
    # dict preserves first-seen order
    return list(dict.fromkeys(item.strip() for item in items))


def extract_character_candidates(script: str, count: int) -> list[str]:
    """Return up to *count* distinct title-case words, in order of appearance."""
    if count <= 0:
        return []
    return _unique(_TITLE_CASE_NAME.findall(script))[:count]


def extract_all_caps_names(script: str, limit: int = MAX_BIBLE_NAMES) -> list[str]:
    """Return up to *limit* distinct all-caps tokens (screenplay character cues)."""
    names = [name for name in _unique(_ALL_CAPS_NAME.findall(script)) if len(name) > 2]
    return names[: max(limit, 0)]


def extract_character_bible(script: str) -> str:
    """Build the character-continuity directive shared by every storyboard frame."""
    names = extract_all_caps_names(script)
    if not names:
        return GENERIC_CONTINUITY
    return (
        f"Maintain continuity for these characters: {', '.join(names)}. "
        "Keep facial features, wardrobe palette, and silhouette consistent scene-to-scene."
    )


def pick_top_lines(script: str, limit: int = MAX_CANDIDATE_LINES) -> list[str]:
    """Return the first *limit* substantial lines of *script*, stripped."""
    lines = (line.strip() for line in _LINE_BREAKS.split(script))
    return [line for line in lines if len(line) > MIN_LINE_LENGTH][:limit]


def _rank_by_keywords(script: str, count: int, keywords: tuple[str, ...]) -> list[str]:
    if count <= 0:
        return []
    lines = pick_top_lines(script)
    matches = [line for line in lines if any(kw in line.lower() for kw in keywords)]
    matched = set(matches)
    rest = [line for line in lines if line not in matched]
    return [*matches, *rest][:count]


def extract_environment_candidates(script: str, count: int) -> list[str]:
    """Script lines describing places, keyword matches first."""
    return _rank_by_keywords(script, count, ENVIRONMENT_KEYWORDS)


def extract_nature_candidates(script: str, count: int) -> list[str]:
    """Script lines describing weather and landscape, keyword matches first."""
    return _rank_by_keywords(script, count, NATURE_KEYWORDS)
