from __future__ import annotations

"""
Build the extraction contract handed to the external text-generation provider.

Design intent:
- Derive one string field per template section so every result key maps to a known title.
- Keep the schema a pure function of the template (same template -> same schema).
- Accept partial/streamed results and normalise them without raising.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

from clinote.internal_core.config import EngineConfig, load_config
from clinote.internal_core.contracts import (
    CLARIFYING_QUESTIONS_KEY,
    MISSING_FIELDS_KEY,
    RESERVED_RESULT_KEYS,
    ExtractionResult,
    TemplateSection,
)
from clinote.template.structure import validate_template_structure

logger = logging.getLogger(__name__)

_MISSING_FIELDS_DESCRIPTION = "Required fields that could not be filled from the transcription"
_CLARIFYING_QUESTIONS_DESCRIPTION = "Questions to ask the practitioner for missing or unclear information"


class ConfigurationError(ValueError):
    """Raised when extraction inputs cannot produce a usable schema."""


@dataclass(frozen=True)
class SchemaField:
    name: str
    description: str
    required: bool


@dataclass(frozen=True)
class SchemaDescriptor:
    fields: tuple[SchemaField, ...]
    model: type[BaseModel] = field(compare=False, repr=False)

    @property
    def section_names(self) -> list[str]:
        return [item.name for item in self.fields]

    def json_schema(self) -> dict[str, Any]:
        return self.model.model_json_schema(by_alias=True)

    def validate_payload(self, payload: Mapping[str, Any]) -> BaseModel:
        """Strictly validate a finished extraction payload against the schema."""
        return self.model.model_validate(payload)


@dataclass(frozen=True)
class ExtractionRequest:
    transcription: str
    schema: SchemaDescriptor
    system_prompt: str
    prompt: str
    model: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "transcription": self.transcription,
            "schema": self.schema.json_schema(),
            "system": self.system_prompt,
            "prompt": self.prompt,
            "model": self.model,
        }


def build_extraction_schema(sections: Sequence[TemplateSection | Mapping[str, Any]]) -> SchemaDescriptor:
    resolved = _coerce_sections(sections)
    if not resolved:
        raise ConfigurationError("Extraction schema requires at least one template section.")

    seen: set[str] = set()
    fields: list[SchemaField] = []
    for section in resolved:
        if section.title in RESERVED_RESULT_KEYS:
            raise ConfigurationError(f"Section title {section.title!r} is reserved for extraction metadata.")
        if section.title in seen:
            raise ConfigurationError(f"Duplicate section title {section.title!r} in extraction schema.")
        seen.add(section.title)
        fields.append(
            SchemaField(
                name=section.title,
                description=section.placeholder or section.title,
                required=section.required,
            )
        )

    frozen_fields = tuple(fields)
    return SchemaDescriptor(fields=frozen_fields, model=_build_schema_model(frozen_fields))


def build_extraction_prompt(
    *,
    template_name: str,
    sections: Sequence[TemplateSection],
    transcription: str,
) -> tuple[str, str]:
    section_lines = "\n".join(
        f"- {section.title}{' (REQUIRED)' if section.required else ''}: {section.placeholder or ''}"
        for section in sections
    )
    system_prompt = (
        "You are a clinical notes assistant helping healthcare practitioners extract structured "
        "information from session transcriptions.\n\n"
        "Your task is to analyze the transcription and map the content to the template fields. "
        "Follow these guidelines:\n\n"
        "1. Extract only information explicitly mentioned in the transcription\n"
        "2. Do NOT invent, infer, or add information that is not present\n"
        "3. Use professional clinical language appropriate for medical records\n"
        "4. Maintain confidentiality and HIPAA compliance standards\n"
        f"5. If critical information is missing for a required field, list it in {MISSING_FIELDS_KEY}\n"
        "6. Generate clarifying questions for any ambiguous or incomplete information\n\n"
        f"Template: {template_name}\n"
        "Required Sections:\n"
        f"{section_lines}\n\n"
        "Remember: Accuracy and completeness are more important than filling every field. "
        "If information is missing, acknowledge it rather than guessing."
    )
    prompt = (
        "Extract structured note fields from the following session transcription:\n\n"
        f"{transcription}\n\n"
        "Analyze the transcription and populate the template fields with relevant information. "
        f"For any required fields that cannot be filled, list them in {MISSING_FIELDS_KEY}. "
        "If there are ambiguities or missing details, provide clarifying questions."
    )
    return system_prompt, prompt


def build_extraction_request(
    transcription: str,
    template: Any,
    *,
    template_name: str = "Clinical Note",
    model: str | None = None,
    config: EngineConfig | None = None,
) -> ExtractionRequest:
    structure = validate_template_structure(template)
    resolved_config = config or load_config()

    text = str(transcription or "").strip()
    if not text:
        raise ValueError("Transcription is required for extraction.")
    max_chars = resolved_config.CLINOTE_MAX_TRANSCRIPT_CHARS
    if len(text) > max_chars:
        logger.warning("transcription truncated chars=%d max_chars=%d", len(text), max_chars)
        text = text[:max_chars]

    schema = build_extraction_schema(structure.sections)
    system_prompt, prompt = build_extraction_prompt(
        template_name=template_name,
        sections=structure.sections,
        transcription=text,
    )
    request = ExtractionRequest(
        transcription=text,
        schema=schema,
        system_prompt=system_prompt,
        prompt=prompt,
        model=(model or resolved_config.CLINOTE_EXTRACTION_MODEL).strip(),
    )
    _append_extraction_debug_log(
        resolved_config.debug_log_path(),
        stage="extraction_request",
        raw=f"{system_prompt}\n\n{prompt}",
        metadata={
            "template_name": template_name,
            "model": request.model,
            "sections": schema.section_names,
            "transcription_chars": len(text),
        },
    )
    return request


def parse_extraction_result(payload: Any) -> ExtractionResult:
    if payload is None:
        return ExtractionResult()
    if isinstance(payload, ExtractionResult):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True)
    if not isinstance(payload, Mapping):
        logger.warning("extraction result ignored: expected mapping, got %s", type(payload).__name__)
        return ExtractionResult()

    fields: dict[str, str] = {}
    missing_fields: list[str] = []
    clarifying_questions: list[str] = []
    for key, value in payload.items():
        name = str(key)
        if name == MISSING_FIELDS_KEY:
            missing_fields = _string_items(value)
        elif name == CLARIFYING_QUESTIONS_KEY:
            clarifying_questions = _string_items(value)
        else:
            fields[name] = value if isinstance(value, str) else ""
    return ExtractionResult(
        fields=fields,
        missing_fields=missing_fields,
        clarifying_questions=clarifying_questions,
    )


def _coerce_sections(sections: Sequence[TemplateSection | Mapping[str, Any]]) -> list[TemplateSection]:
    resolved: list[TemplateSection] = []
    for idx, item in enumerate(sections or []):
        if isinstance(item, TemplateSection):
            resolved.append(item)
            continue
        try:
            resolved.append(TemplateSection.model_validate(item))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid section at index {idx}: {exc.errors()[0].get('msg')}") from exc
    return resolved


def _build_schema_model(fields: tuple[SchemaField, ...]) -> type[BaseModel]:
    # Titles are free text, so they ride on aliases; attribute names stay positional.
    definitions: dict[str, Any] = {}
    for idx, item in enumerate(fields):
        definitions[f"section_{idx}"] = (str, Field(alias=item.name, description=item.description))
    definitions["missing_fields"] = (
        Optional[List[str]],
        Field(default=None, alias=MISSING_FIELDS_KEY, description=_MISSING_FIELDS_DESCRIPTION),
    )
    definitions["clarifying_questions"] = (
        Optional[List[str]],
        Field(default=None, alias=CLARIFYING_QUESTIONS_KEY, description=_CLARIFYING_QUESTIONS_DESCRIPTION),
    )
    return create_model(
        "NoteExtraction",
        __config__=ConfigDict(extra="ignore", populate_by_name=True),
        **definitions,
    )


def _string_items(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _append_extraction_debug_log(
    path: str | None,
    *,
    stage: str,
    raw: str,
    metadata: dict[str, Any] | None = None,
) -> None:
    if not path:
        return
    try:
        target = Path(path).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).isoformat()
        meta = json.dumps(metadata or {}, ensure_ascii=True)
        payload = (
            f"[{stamp}] stage={stage} meta={meta}\n"
            "-----BEGIN EXTRACTION RAW-----\n"
            f"{raw}\n"
            "-----END EXTRACTION RAW-----\n"
        )
        with target.open("a", encoding="utf-8") as f:
            f.write(payload)
    except OSError:
        # Debug logging must never break extraction.
        return
