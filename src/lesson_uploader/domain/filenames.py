from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class ContentType(str, Enum):
    FULL = "FULL"
    QUESTION_VARIANT = "QV"
    REVISION = "RE"


EXPECTED_FORMAT = (
    "[RE-]<Year>-T<Term>-U<Unit>-L<Lesson>-<Branch>[-<Lang>]-P<####>-<TeacherName>"
    "[-C<Class>]--{<Title>}[-Q<Number>]"
)

_EXTENSION_RE = re.compile(r"\.[A-Za-z0-9]{1,5}$")
_SEPARATOR_RUN_RE = re.compile(r"\s*-[-\s]*")
_TRAILING_QUESTION_RE = re.compile(r"-Q(\d+)$", re.IGNORECASE)

_PRIMARY_RE = re.compile(
    r"""
    ^(?P<revision>RE-)?
    (?P<year>[JSM][1-6])
    (?:-(?P<term>T[12]))?
    (?:-(?P<unit>U\d+))?
    (?:-(?P<lesson>L\d+))?
    -(?P<branch>[A-Z]{2,5}(?:-[A-Z]{2})?)
    -(?P<teacher_code>P\d{4})
    -(?P<teacher_name>[^-{}]+?)
    (?:-(?P<class_number>C\d+))?
    -\{(?P<title>[^{}]*)\}
    (?:-Q(?P<question>\d+))?$
    """,
    re.VERBOSE | re.IGNORECASE,
)

_YEAR_TOKEN = re.compile(r"[JSM][1-6]")
_TERM_TOKEN = re.compile(r"T[12]")
_UNIT_TOKEN = re.compile(r"U\d+")
_LESSON_TOKEN = re.compile(r"L\d+")
_CODE_TOKEN = re.compile(r"P\d{4}")
_CLASS_TOKEN = re.compile(r"C\d+")
_QUESTION_TOKEN = re.compile(r"Q(\d+)")
_BRANCH_TOKEN = re.compile(r"[A-Z]{2,5}")


@dataclass(frozen=True)
class ParsedFilename:
    content_type: ContentType
    academic_year: str
    branch: str
    teacher_code: str
    teacher_name: str
    localized_title: str
    term: str | None = None
    unit: str | None = None
    lesson: str | None = None
    class_number: str | None = None
    question_number: int | None = None
    grammar: str = "primary"


@dataclass(frozen=True)
class ParseFailure:
    filename: str
    message: str
    missing: tuple[str, ...] = ()


def strip_extension(filename: str) -> str:
    """
    Drop a trailing file extension, keeping dots that belong to the name.

    Examples:
        >>> strip_extension("M2-SCI-P0078-Ahmed--{x}.mp4")
        'M2-SCI-P0078-Ahmed--{x}'
        >>> strip_extension("lesson {1.2}")
        'lesson {1.2}'
    """
    return _EXTENSION_RE.sub("", filename.strip())


def upload_sort_key(filename: str) -> tuple[str, int]:
    """
    Order files by name with the trailing ``-Q<n>`` suffix removed, then by ``n``.

    The plain lesson sorts before its question variants because it carries ``0``.
    """
    stem = strip_extension(filename)
    match = _TRAILING_QUESTION_RE.search(stem)
    if match is None:
        return stem, 0
    return stem[: match.start()], int(match.group(1))


def parse_filename(filename: str) -> ParsedFilename | ParseFailure:
    stem = strip_extension(filename)
    head, title, tail = _split_title(stem)
    normalized = _collapse_separators(head)
    if title is not None:
        normalized = f"{normalized.rstrip('-')}-{{{title}}}{_collapse_separators(tail)}"

    match = _PRIMARY_RE.match(normalized)
    if match is not None:
        return _from_primary(match)
    return _parse_fallback(filename, head, title, tail)


def _split_title(stem: str) -> tuple[str, str | None, str]:
    open_at = stem.find("{")
    close_at = stem.rfind("}")
    if open_at == -1 or close_at < open_at:
        return stem, None, ""
    return stem[:open_at], stem[open_at + 1 : close_at], stem[close_at + 1 :]


def _collapse_separators(value: str) -> str:
    return _SEPARATOR_RUN_RE.sub("-", value.strip())


def _from_primary(match: re.Match[str]) -> ParsedFilename:
    question = match.group("question")
    question_number = int(question) if question is not None else None
    if match.group("revision"):
        content_type = ContentType.REVISION
    elif question_number is not None:
        content_type = ContentType.QUESTION_VARIANT
    else:
        content_type = ContentType.FULL
    return ParsedFilename(
        content_type=content_type,
        academic_year=match.group("year").upper(),
        term=_upper_or_none(match.group("term")),
        unit=_upper_or_none(match.group("unit")),
        lesson=_upper_or_none(match.group("lesson")),
        branch=match.group("branch").upper(),
        teacher_code=match.group("teacher_code").upper(),
        teacher_name=match.group("teacher_name").strip(),
        class_number=_upper_or_none(match.group("class_number")),
        localized_title=match.group("title").strip(),
        question_number=question_number,
        grammar="primary",
    )


def _parse_fallback(
    filename: str, head: str, title: str | None, tail: str
) -> ParsedFilename | ParseFailure:
    tokens = [
        token.strip()
        for token in _collapse_separators(f"{head}-{tail}").split("-")
        if token.strip()
    ]
    found: dict[str, str] = {}
    branch_parts: list[str] = []
    name_parts: list[str] = []
    revision = False
    question_marker = False
    question_number: int | None = None

    for token in tokens:
        upper = token.upper()
        question_match = _QUESTION_TOKEN.fullmatch(upper)
        if upper == "RE" and not found:
            revision = True
        elif upper == "QV":
            question_marker = True
        elif _fill_once(found, "year", _YEAR_TOKEN, upper):
            continue
        elif _fill_once(found, "term", _TERM_TOKEN, upper):
            continue
        elif _fill_once(found, "unit", _UNIT_TOKEN, upper):
            continue
        elif _fill_once(found, "lesson", _LESSON_TOKEN, upper):
            continue
        elif _fill_once(found, "teacher_code", _CODE_TOKEN, upper):
            continue
        elif _fill_once(found, "class_number", _CLASS_TOKEN, upper):
            continue
        elif question_match is not None and question_number is None:
            question_number = int(question_match.group(1))
        elif _BRANCH_TOKEN.fullmatch(token) and len(branch_parts) < 2:
            branch_parts.append(token)
        else:
            name_parts.append(token)

    missing: list[str] = []
    if "year" not in found:
        missing.append("academic year")
    if not branch_parts:
        missing.append("branch")
    if "teacher_code" not in found:
        missing.append("teacher code")
    if not name_parts:
        missing.append("teacher name")
    if missing:
        return ParseFailure(
            filename=filename,
            message=(
                f"Invalid filename format for {filename}. Expected {EXPECTED_FORMAT}; "
                f"missing {', '.join(missing)}"
            ),
            missing=tuple(missing),
        )

    if revision:
        content_type = ContentType.REVISION
    elif question_number is not None or question_marker:
        content_type = ContentType.QUESTION_VARIANT
    else:
        content_type = ContentType.FULL
    return ParsedFilename(
        content_type=content_type,
        academic_year=found["year"],
        term=found.get("term"),
        unit=found.get("unit"),
        lesson=found.get("lesson"),
        branch="-".join(branch_parts),
        teacher_code=found["teacher_code"],
        teacher_name="-".join(name_parts),
        class_number=found.get("class_number"),
        localized_title=(title or "").strip(),
        question_number=question_number,
        grammar="fallback",
    )


def _fill_once(found: dict[str, str], key: str, pattern: re.Pattern[str], token: str) -> bool:
    if key in found or not pattern.fullmatch(token):
        return False
    found[key] = token
    return True


def _upper_or_none(value: str | None) -> str | None:
    return value.upper() if value else None
