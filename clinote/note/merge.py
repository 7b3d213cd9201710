from __future__ import annotations

"""
Reconcile extraction results and live edits into the authoritative section content map.

Design intent:
- A section under active edit is never overwritten by system-originated content.
- Merges are idempotent and only touch keys that name template sections.
- Completeness and content rules are advisory output; the caller decides whether to block saving.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Iterable, Mapping

from clinote.internal_core.contracts import ExtractionResult
from clinote.note.extraction import parse_extraction_result
from clinote.template.structure import get_required_sections, validate_template_structure

logger = logging.getLogger(__name__)


class SectionState(Enum):
    CLEAN = "clean"
    EDITING = "editing"
    DIRTY = "dirty"


class SectionStateMachine:
    """Per-section Clean/Editing/Dirty tracking driven by focus, blur and commit commands."""

    def __init__(self, titles: Iterable[str]) -> None:
        self._states: dict[str, SectionState] = {title: SectionState.CLEAN for title in titles}

    def state(self, title: str) -> SectionState:
        return self._states[self._require(title)]

    def is_editing(self, title: str) -> bool:
        return self._states.get(title) is SectionState.EDITING

    def editing_titles(self) -> frozenset[str]:
        return frozenset(title for title, state in self._states.items() if state is SectionState.EDITING)

    def blocked_titles(self) -> frozenset[str]:
        """Titles a system-originated update must skip: anything not CLEAN."""
        return frozenset(title for title, state in self._states.items() if state is not SectionState.CLEAN)

    def focus(self, title: str) -> None:
        self._states[self._require(title)] = SectionState.EDITING

    def blur(self, title: str) -> bool:
        """Editing -> Dirty. Returns False when the section was not being edited."""
        if self._states[self._require(title)] is not SectionState.EDITING:
            return False
        self._states[title] = SectionState.DIRTY
        return True

    def commit(self, title: str) -> None:
        if self._states[self._require(title)] is SectionState.DIRTY:
            self._states[title] = SectionState.CLEAN

    def accepts_programmatic_update(self, title: str) -> bool:
        """Whether a system-originated update may be applied to `title` right now."""
        return self._states.get(title) is SectionState.CLEAN

    def _require(self, title: str) -> str:
        if title not in self._states:
            raise KeyError(f"Unknown section title: {title!r}")
        return title


@dataclass(frozen=True)
class MergeReport:
    applied: list[str]
    skipped_editing: list[str]
    ignored_unknown: list[str]


@dataclass(frozen=True)
class RequiredSectionsResult:
    valid: bool
    missing_sections: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "missingSections": list(self.missing_sections)}


@dataclass(frozen=True)
class ContentIssue:
    title: str
    code: str
    message: str


def merge_extraction_result(
    template: Any,
    content_map: Mapping[str, str],
    result: ExtractionResult | Mapping[str, Any] | None,
    *,
    editing: Collection[str] = frozenset(),
) -> tuple[dict[str, str], MergeReport]:
    structure = validate_template_structure(template)
    section_titles = structure.section_titles()
    known = set(section_titles)
    parsed = parse_extraction_result(result)

    merged = {title: str(value) for title, value in content_map.items() if title in known}
    dropped_existing = [title for title in content_map if title not in known]
    if dropped_existing:
        logger.debug("content map keys dropped (not in template): %s", dropped_existing)

    applied: list[str] = []
    skipped_editing: list[str] = []
    ignored_unknown: list[str] = []
    for key, value in parsed.fields.items():
        if key not in known:
            ignored_unknown.append(key)
            continue
        if key in editing:
            skipped_editing.append(key)
            continue
        merged[key] = value
        applied.append(key)

    report = MergeReport(
        applied=applied,
        skipped_editing=skipped_editing,
        ignored_unknown=ignored_unknown,
    )
    if ignored_unknown:
        logger.debug("extraction keys ignored (not in template): %s", ignored_unknown)
    return merged, report


def validate_required_sections(template: Any, content_map: Mapping[str, Any]) -> RequiredSectionsResult:
    structure = validate_template_structure(template)
    required = get_required_sections(structure)
    missing_sections = [
        section.title
        for section in structure.sections
        if section.title in required and not _has_content(content_map.get(section.title))
    ]
    return RequiredSectionsResult(valid=not missing_sections, missing_sections=missing_sections)


def validate_section_content(template: Any, content_map: Mapping[str, Any]) -> list[ContentIssue]:
    structure = validate_template_structure(template)
    issues: list[ContentIssue] = []
    for section in structure.sections:
        text = str(content_map.get(section.title) or "").strip()
        if not text:
            continue
        if section.min_length is not None and len(text) < section.min_length:
            issues.append(
                ContentIssue(
                    title=section.title,
                    code="min_length",
                    message=f"{section.title} must be at least {section.min_length} characters.",
                )
            )
        if section.max_length is not None and len(text) > section.max_length:
            issues.append(
                ContentIssue(
                    title=section.title,
                    code="max_length",
                    message=f"{section.title} must be at most {section.max_length} characters.",
                )
            )
        rules = section.validation_rules
        if rules is None or not rules.pattern:
            continue
        try:
            matched = re.search(rules.pattern, text) is not None
        except re.error as exc:
            issues.append(
                ContentIssue(
                    title=section.title,
                    code="invalid_pattern",
                    message=f"{section.title} has an invalid validation pattern: {exc}",
                )
            )
            continue
        if not matched:
            issues.append(
                ContentIssue(
                    title=section.title,
                    code="pattern",
                    message=rules.error_message or f"{section.title} does not match the expected format.",
                )
            )
    return issues


def _has_content(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())
