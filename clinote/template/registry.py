from __future__ import annotations

"""
Resolve note templates by id from built-ins and an optional template directory.

Design intent:
- Ship SOAP and progress templates without any configuration.
- Let practices drop JSON template files into a directory for clinician-owned edits.
- Validate every file on load so broken templates never reach the codec.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from clinote.internal_core.config import load_config
from clinote.internal_core.contracts import TemplateStructure
from clinote.template.structure import (
    SchemaValidationError,
    create_progress_note_template,
    create_soap_template,
    validate_template_structure,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateSpec:
    template_id: str
    template_name: str
    structure: TemplateStructure
    path: Optional[Path] = None


_BUILTIN_TEMPLATES: dict[str, tuple[str, Callable[[], TemplateStructure]]] = {
    "soap": ("SOAP Note", create_soap_template),
    "progress_note": ("Progress Note", create_progress_note_template),
}


def list_templates(template_dir: str | Path | None = None) -> list[TemplateSpec]:
    return list(_load_template_registry(template_dir).values())


def get_template(template_id: str, template_dir: str | Path | None = None) -> TemplateSpec:
    registry = _load_template_registry(template_dir)
    normalized_id = str(template_id or "").strip()
    spec = registry.get(normalized_id)
    if spec is None:
        raise ValueError(f"Unknown template_id '{normalized_id}'. available={sorted(registry)}")
    return spec


def load_template_file(path: str | Path) -> TemplateSpec:
    resolved = Path(path)
    template_id = resolved.stem.strip()
    if not template_id:
        raise ValueError(f"Template filename must include template_id: {resolved}")
    try:
        raw = json.loads(resolved.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SchemaValidationError([f"{resolved.name}: invalid JSON ({exc.msg})"]) from exc

    default_name = template_id.replace("_", " ").strip().title()
    template_name = default_name
    structure_raw = raw
    if isinstance(raw, dict) and "structure" in raw:
        template_name = str(raw.get("name") or "").strip() or default_name
        structure_raw = raw["structure"]

    try:
        structure = validate_template_structure(structure_raw)
    except SchemaValidationError as exc:
        raise SchemaValidationError(
            [f"{resolved.name}: {issue}" for issue in exc.issues],
            subject=f"template file {resolved.name}",
        ) from exc
    return TemplateSpec(
        template_id=template_id,
        template_name=template_name,
        structure=structure,
        path=resolved,
    )


def _template_root(template_dir: str | Path | None) -> Optional[Path]:
    if template_dir is not None and str(template_dir).strip():
        return Path(template_dir).expanduser()
    return load_config().template_dir_path()


def _load_template_registry(template_dir: str | Path | None) -> dict[str, TemplateSpec]:
    registry: dict[str, TemplateSpec] = {
        template_id: TemplateSpec(template_id=template_id, template_name=name, structure=factory())
        for template_id, (name, factory) in _BUILTIN_TEMPLATES.items()
    }

    root = _template_root(template_dir)
    if root is None:
        return registry
    if not root.exists():
        raise ValueError(f"Template directory not found: {root}")
    if not root.is_dir():
        raise ValueError(f"Template path is not a directory: {root}")

    for template_file in sorted(root.glob("*.json")):
        spec = load_template_file(template_file)
        if spec.template_id in registry:
            raise ValueError(f"Duplicate template_id '{spec.template_id}' in {root}.")
        registry[spec.template_id] = spec
    logger.debug("template registry loaded root=%s count=%d", root, len(registry))
    return registry
