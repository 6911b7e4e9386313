from __future__ import annotations

from dataclasses import dataclass

from lesson_uploader.domain.catalog import Library
from lesson_uploader.domain.collection_rules import (
    CollectionResult,
    CollectionRule,
    build_rules,
    content_type_label,
    resolve_collection,
)
from lesson_uploader.domain.filenames import ParseFailure, ParsedFilename, parse_filename
from lesson_uploader.domain.library_match import (
    LibraryMatch,
    MatchWeights,
    is_auto_assignable,
    resolve_library,
)


@dataclass(frozen=True)
class Classification:
    filename: str
    parsed: ParsedFilename | None
    parse_failure: ParseFailure | None
    match: LibraryMatch | None
    collection: CollectionResult | None
    needs_manual_selection: bool
    reason: str

    @property
    def library_name(self) -> str:
        if self.needs_manual_selection or self.match is None or self.match.library is None:
            return ""
        return self.match.library.name

    @property
    def collection_name(self) -> str:
        if self.needs_manual_selection or self.collection is None:
            return ""
        return self.collection.name


class ClassificationService:
    def __init__(
        self,
        min_confidence: int = 90,
        default_term: str = "T1",
        weights: MatchWeights | None = None,
        rules: list[CollectionRule] | None = None,
    ) -> None:
        self._min_confidence = min_confidence
        self._default_term = default_term
        self._weights = weights or MatchWeights()
        self._rules = rules if rules is not None else build_rules()

    def classify(self, filename: str, libraries: list[Library], year: str) -> Classification:
        parsed = parse_filename(filename)
        if isinstance(parsed, ParseFailure):
            return Classification(
                filename=filename,
                parsed=None,
                parse_failure=parsed,
                match=None,
                collection=None,
                needs_manual_selection=True,
                reason=parsed.message,
            )

        match = resolve_library(parsed, libraries, self._weights)
        collection = self.collection_for(parsed, year)
        if match.library is None:
            reason = (
                f"No library matches {parsed.academic_year} {parsed.branch} "
                f"{parsed.teacher_code} {parsed.teacher_name}"
            )
            return Classification(filename, parsed, None, match, collection, True, reason)
        if not is_auto_assignable(match, self._min_confidence):
            reason = (
                f"Best match {match.library.name} scored {match.confidence_score}, "
                f"below the {self._min_confidence} needed for automatic assignment"
            )
            return Classification(filename, parsed, None, match, collection, True, reason)

        reason = (
            f"{content_type_label(parsed.content_type).capitalize()} matched "
            f"{match.library.name} ({match.confidence_score}%). {collection.reason}"
        )
        return Classification(filename, parsed, None, match, collection, False, reason)

    def collection_for(self, parsed: ParsedFilename, year: str) -> CollectionResult:
        return resolve_collection(parsed, year, self._default_term, self._rules)
