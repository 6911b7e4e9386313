from __future__ import annotations

import re
from dataclasses import dataclass

from .filenames import ContentType, ParsedFilename


@dataclass(frozen=True)
class CollectionRule:
    pattern: re.Pattern[str]
    name_template: str
    reason: str


@dataclass(frozen=True)
class CollectionResult:
    name: str
    reason: str


# Rules match a routing key of the form "<content type>:<term or ->", e.g. "QV:T2".
_RULE_TABLE: tuple[tuple[str, str, str], ...] = (
    (r"^RE:-$", "RE-{year}", "General revision video"),
    (r"^RE:(?P<term>T\d)$", "RE-{term}-{year}", "Revision video for {term}"),
    (r"^QV:(?P<term>T\d)$", "{term}-{year}-QV", "Questions video for {term}"),
    (r"^QV:-$", "{default_term}-{year}-QV", "Questions video without a term, using {default_term}"),
    (r"^FULL:(?P<term>T\d)$", "{term}-{year}", "Regular content video for {term}"),
)

_DEFAULT_TEMPLATE = "{default_term}-{year}"
_DEFAULT_REASON = "No rule matched, using the regular {default_term} collection"


def build_rules() -> list[CollectionRule]:
    return [
        CollectionRule(pattern=re.compile(pattern), name_template=template, reason=reason)
        for pattern, template, reason in _RULE_TABLE
    ]


def routing_key(parsed: ParsedFilename) -> str:
    return f"{parsed.content_type.value}:{parsed.term or '-'}"


def resolve_collection(
    parsed: ParsedFilename,
    year: str,
    default_term: str = "T1",
    rules: list[CollectionRule] | None = None,
) -> CollectionResult:
    """Pick the target collection for a parsed filename; the first matching rule wins."""
    key = routing_key(parsed)
    for rule in rules if rules is not None else build_rules():
        match = rule.pattern.match(key)
        if match is None:
            continue
        values = {"year": year, "default_term": default_term, **match.groupdict()}
        return CollectionResult(
            name=rule.name_template.format(**values),
            reason=rule.reason.format(**values),
        )
    values = {"year": year, "default_term": default_term}
    return CollectionResult(
        name=_DEFAULT_TEMPLATE.format(**values),
        reason=_DEFAULT_REASON.format(**values),
    )


def content_type_label(content_type: ContentType) -> str:
    return {
        ContentType.FULL: "full lesson",
        ContentType.QUESTION_VARIANT: "questions",
        ContentType.REVISION: "revision",
    }[content_type]
