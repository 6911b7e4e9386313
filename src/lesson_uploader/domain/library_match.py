from __future__ import annotations

import re
from dataclasses import dataclass

from .catalog import Library
from .filenames import ParsedFilename

MAX_CONFIDENCE = 100

_TEACHER_CODE_RE = re.compile(r"P\d{4}", re.IGNORECASE)

# Filenames sometimes use the secondary-stage prefix for the same grade.
YEAR_ALIASES = {"S1": "M1", "S2": "M2", "S3": "M3"}


@dataclass(frozen=True)
class MatchWeights:
    teacher_code: int = 45
    academic_year: int = 30
    branch: int = 15
    teacher_name: int = 15


@dataclass(frozen=True)
class ScoredLibrary:
    library: Library
    score: int


@dataclass(frozen=True)
class LibraryMatch:
    library: Library | None
    confidence_score: int
    scored: tuple[ScoredLibrary, ...] = ()

    @property
    def alternatives(self) -> list[Library]:
        return [candidate.library for candidate in self.scored]


def score_library(
    parsed: ParsedFilename, library: Library, weights: MatchWeights = MatchWeights()
) -> int:
    """
    Score how well a library name matches the parsed attributes.

    Example:
        parsed = M2 / SCI-AR / P0078 / "Muslim"
        score_library(parsed, Library("1", "M2-SCI-AR-P0078-Muslim Elsayed"))
        # 100
    """
    name = library.name.upper()
    hits = 0
    score = 0

    code_match = _TEACHER_CODE_RE.search(name)
    if code_match is not None and code_match.group(0) == parsed.teacher_code.upper():
        score += weights.teacher_code
        hits += 1

    raw_year = parsed.academic_year.upper()
    years = {raw_year, YEAR_ALIASES.get(raw_year, raw_year)}
    if any(name == year or name.startswith(f"{year}-") for year in years):
        score += weights.academic_year
        hits += 1

    if parsed.branch and parsed.branch.upper() in name:
        score += weights.branch
        hits += 1

    teacher_name = _normalize_name(parsed.teacher_name)
    if teacher_name and teacher_name in _normalize_name(library.name):
        score += weights.teacher_name
        hits += 1

    if hits == 4:
        return MAX_CONFIDENCE
    return min(score, MAX_CONFIDENCE)


def resolve_library(
    parsed: ParsedFilename,
    libraries: list[Library],
    weights: MatchWeights = MatchWeights(),
) -> LibraryMatch:
    scored = [
        ScoredLibrary(library=library, score=score_library(parsed, library, weights))
        for library in libraries
    ]
    # sorted() is stable, so equal scores keep catalog order.
    candidates = sorted(
        (candidate for candidate in scored if candidate.score > 0),
        key=lambda candidate: candidate.score,
        reverse=True,
    )
    if not candidates:
        return LibraryMatch(library=None, confidence_score=0, scored=())
    best = candidates[0]
    return LibraryMatch(
        library=best.library, confidence_score=best.score, scored=tuple(candidates)
    )


def is_auto_assignable(match: LibraryMatch, min_confidence: int) -> bool:
    return match.library is not None and match.confidence_score >= min_confidence


def _normalize_name(value: str) -> str:
    return " ".join(value.replace("_", " ").split()).lower()
