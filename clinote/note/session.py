from __future__ import annotations

"""
Client-side editing session for one note: owns the draft content map until save.

Design intent:
- Route every programmatic update (markdown reload, extraction arrival) through the merge engine.
- Buffer typing while a section is focused; commit on blur.
- Produce the persistence payload (markdown_content + extracted_fields) with advisory validation.
"""

import logging
import uuid
from typing import Any, Optional

from clinote.internal_core.audit import log_event
from clinote.internal_core.contracts import (
    CLARIFYING_QUESTIONS_KEY,
    MISSING_FIELDS_KEY,
    AuditEvent,
    NoteSavePayload,
    NoteStatus,
    TemplateStructure,
)
from clinote.note.extraction import parse_extraction_result
from clinote.note.markdown import markdown_to_sections, sections_to_markdown
from clinote.note.merge import (
    ContentIssue,
    MergeReport,
    RequiredSectionsResult,
    SectionState,
    SectionStateMachine,
    merge_extraction_result,
    validate_required_sections,
    validate_section_content,
)
from clinote.template.structure import validate_template_structure

logger = logging.getLogger(__name__)


class NoteEditingSession:
    def __init__(self, template: Any, *, markdown: str = "", session_id: Optional[str] = None) -> None:
        self._template: TemplateStructure = validate_template_structure(template)
        self._session_id = session_id or uuid.uuid4().hex
        self._states = SectionStateMachine(self._template.section_titles())
        self._content: dict[str, str] = {}
        self._drafts: dict[str, str] = {}
        self._extracted_fields: dict[str, Any] = {}
        self._missing_fields: list[str] = []
        self._clarifying_questions: list[str] = []
        self._audit_events: list[AuditEvent] = []
        if markdown:
            self.load_markdown(markdown)

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def template(self) -> TemplateStructure:
        return self._template

    @property
    def content(self) -> dict[str, str]:
        return dict(self._content)

    @property
    def extracted_fields(self) -> dict[str, Any]:
        return dict(self._extracted_fields)

    @property
    def missing_fields(self) -> list[str]:
        return list(self._missing_fields)

    @property
    def clarifying_questions(self) -> list[str]:
        return list(self._clarifying_questions)

    @property
    def audit_events(self) -> list[AuditEvent]:
        return list(self._audit_events)

    def section_state(self, title: str) -> SectionState:
        return self._states.state(title)

    def section_text(self, title: str) -> str:
        """Text currently shown for a section (the in-progress draft while editing)."""
        if self._states.is_editing(title):
            return self._drafts.get(title, "")
        return self._content.get(title, "")

    def load_markdown(self, markdown: str) -> MergeReport:
        decoded = markdown_to_sections(markdown, self._template)
        self._content, report = merge_extraction_result(
            self._template,
            self._content,
            decoded,
            editing=self._states.blocked_titles(),
        )
        log_event(
            self._audit_events,
            self._session_id,
            "SESSION_LOADED",
            "markdown_loaded",
            f"sections={len(report.applied)} skipped_editing={len(report.skipped_editing)}",
        )
        return report

    def apply_extraction(self, payload: Any) -> MergeReport:
        result = parse_extraction_result(payload)
        self._content, report = merge_extraction_result(
            self._template,
            self._content,
            result,
            editing=self._states.blocked_titles(),
        )
        self._missing_fields = list(result.missing_fields)
        self._clarifying_questions = list(result.clarifying_questions)
        self._extracted_fields = {key: result.fields[key] for key in report.applied + report.skipped_editing}
        self._extracted_fields[MISSING_FIELDS_KEY] = list(result.missing_fields)
        self._extracted_fields[CLARIFYING_QUESTIONS_KEY] = list(result.clarifying_questions)

        logger.info(
            "extraction merged session_id=%s applied=%d skipped_editing=%d ignored_unknown=%d "
            "missing_fields=%d clarifying_questions=%d",
            self._session_id,
            len(report.applied),
            len(report.skipped_editing),
            len(report.ignored_unknown),
            len(result.missing_fields),
            len(result.clarifying_questions),
        )
        log_event(
            self._audit_events,
            self._session_id,
            "EXTRACTION_APPLIED",
            "extraction_merged",
            f"applied={report.applied} skipped_editing={report.skipped_editing} "
            f"ignored_unknown={len(report.ignored_unknown)}",
        )
        return report

    def focus(self, title: str) -> None:
        section = self._template.section(title)
        if section is None:
            raise KeyError(f"Unknown section title: {title!r}")
        if section.locked:
            raise ValueError(f"Section {title!r} is locked and cannot be edited.")
        if not self._states.is_editing(title):
            self._drafts[title] = self._content.get(title, "")
        self._states.focus(title)
        log_event(self._audit_events, self._session_id, "SECTION_FOCUSED", "section_focused", title)

    def edit(self, title: str, text: str) -> None:
        if not self._states.is_editing(title):
            raise ValueError(f"Section {title!r} is not being edited; focus it first.")
        self._drafts[title] = str(text or "")

    def blur(self, title: str) -> bool:
        if not self._states.blur(title):
            return False
        self._content[title] = self._drafts.pop(title, "")
        self._states.commit(title)
        log_event(self._audit_events, self._session_id, "SECTION_COMMITTED", "section_committed", title)
        return True

    def to_markdown(self) -> str:
        return sections_to_markdown(self._template, self._content)

    def validate(self) -> RequiredSectionsResult:
        return validate_required_sections(self._template, self._content)

    def content_issues(self) -> list[ContentIssue]:
        return validate_section_content(self._template, self._content)

    def build_save_payload(self, status: NoteStatus = "completed") -> NoteSavePayload:
        validation = self.validate()
        resolved_status: NoteStatus = status
        if status != "draft" and not validation.valid:
            resolved_status = "draft"
            logger.warning(
                "save downgraded to draft session_id=%s missing_sections=%s",
                self._session_id,
                validation.missing_sections,
            )
        payload = NoteSavePayload(
            markdown_content=self.to_markdown(),
            extracted_fields=self.extracted_fields,
            status=resolved_status,
            missing_sections=validation.missing_sections,
        )
        log_event(
            self._audit_events,
            self._session_id,
            "SAVE_PREPARED",
            "save_payload_built",
            f"status={resolved_status} missing_sections={len(validation.missing_sections)}",
        )
        return payload
