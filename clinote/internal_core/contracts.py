from __future__ import annotations

import re
from typing import Any, Dict, List, Literal, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Auxiliary keys of an extraction result; never valid section titles.
MISSING_FIELDS_KEY = "missingFields"
CLARIFYING_QUESTIONS_KEY = "clarifyingQuestions"
RESERVED_RESULT_KEYS = frozenset({MISSING_FIELDS_KEY, CLARIFYING_QUESTIONS_KEY})

NoteStatus = Literal["draft", "completed", "approved"]

_REQUIRED_MARKER_RE = re.compile(r"\s+\*$")


def section_title_problems(titles: Sequence[str], level_two_headers: Sequence[str]) -> list[str]:
    """Cross-section title conflicts: duplicates, reserved keys, level-2 header collisions."""
    problems: list[str] = []
    seen: set[str] = set()
    for title in titles:
        if title in seen:
            problems.append(f"duplicate section title {title!r}")
        seen.add(title)
        if title in RESERVED_RESULT_KEYS:
            problems.append(f"section title {title!r} is reserved")
    for text in level_two_headers:
        # A level-2 header line would be read back as the section of the same name.
        if text in seen:
            problems.append(f"level-2 header {text!r} collides with a section title")
    return problems


class TemplateHeader(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    level: int = Field(ge=1, le=6)
    text: str = Field(min_length=1)
    locked: bool = True
    required: bool = False


class SectionValidationRules(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    pattern: Optional[str] = None
    error_message: Optional[str] = Field(default=None, alias="errorMessage")


class TemplateSection(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    title: str = Field(min_length=1)
    placeholder: Optional[str] = None
    required: bool = False
    locked: bool = False
    min_length: Optional[int] = Field(default=None, ge=0, alias="minLength")
    max_length: Optional[int] = Field(default=None, ge=1, alias="maxLength")
    validation_rules: Optional[SectionValidationRules] = Field(default=None, alias="validationRules")

    @field_validator("title")
    @classmethod
    def _validate_title_line(cls, value: str) -> str:
        # Titles are written as a single "## <title>" line and must read back verbatim.
        if "\n" in value or "\r" in value:
            raise ValueError("title must be a single line")
        if value != value.strip():
            raise ValueError("title must not start or end with whitespace")
        if _REQUIRED_MARKER_RE.search(value):
            raise ValueError("title must not end with the ' *' required marker")
        return value

    @model_validator(mode="after")
    def _validate_length_window(self) -> "TemplateSection":
        if self.min_length is not None and self.max_length is not None:
            if self.min_length > self.max_length:
                raise ValueError("minLength must be <= maxLength")
        return self


class TemplateMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    version: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    category: Optional[str] = None


class TemplateStructure(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    headers: List[TemplateHeader] = Field(default_factory=list)
    sections: List[TemplateSection] = Field(min_length=1)
    metadata: Optional[TemplateMetadata] = None

    @field_validator("headers", mode="before")
    @classmethod
    def _headers_default(cls, value: Any) -> Any:
        return [] if value is None else value

    @model_validator(mode="after")
    def _validate_section_titles(self) -> "TemplateStructure":
        problems = section_title_problems(
            [section.title for section in self.sections],
            [header.text for header in self.headers if header.level == 2],
        )
        if problems:
            raise ValueError("; ".join(problems))
        return self

    def section_titles(self) -> list[str]:
        return [section.title for section in self.sections]

    def section(self, title: str) -> Optional[TemplateSection]:
        for section in self.sections:
            if section.title == title:
                return section
        return None


class NoteTemplate(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: UUID
    name: str = Field(min_length=1)
    description: Optional[str] = None
    structure: TemplateStructure
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ExtractionResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fields: Dict[str, str] = Field(default_factory=dict)
    missing_fields: List[str] = Field(default_factory=list)
    clarifying_questions: List[str] = Field(default_factory=list)


class NoteSavePayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    markdown_content: str
    extracted_fields: Dict[str, Any] = Field(default_factory=dict)
    status: NoteStatus = "draft"
    missing_sections: List[str] = Field(default_factory=list)


AuditEventType = Literal[
    "SESSION_LOADED",
    "EXTRACTION_APPLIED",
    "SECTION_FOCUSED",
    "SECTION_COMMITTED",
    "SAVE_PREPARED",
]


class AuditEvent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ts_iso: str
    session_id: str
    type: AuditEventType
    code: str
    detail: str
