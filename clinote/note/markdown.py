from __future__ import annotations

"""
Encode/decode section content maps to and from the persisted markdown note.

Design intent:
- Sections are keyed by `## <title>` lines; headers above them are template-owned.
- Decoding never raises: unknown headers, duplicates and hand edits degrade gracefully.
- encode -> decode with the same template reproduces the (trimmed) content map.
"""

import re
from typing import Any, Mapping

from clinote.template.structure import validate_template_structure

# "## Title" with an optional trailing " *" required-section marker.
_SECTION_HEADER_RE = re.compile(r"^##\s+(.+?)(?:\s+\*)?$")


def sections_to_markdown(template: Any, content_map: Mapping[str, Any]) -> str:
    structure = validate_template_structure(template)
    parts: list[str] = []
    for header in structure.headers:
        parts.append(f"{'#' * header.level} {header.text}")
        parts.append("")

    for section in structure.sections:
        parts.append(f"## {section.title}")
        parts.append("")
        parts.append(str(content_map.get(section.title) or "").strip())
        parts.append("")

    return "\n".join(parts)


def markdown_to_sections(markdown: str, template: Any) -> dict[str, str]:
    structure = validate_template_structure(template)
    section_titles = set(structure.section_titles())

    sections: dict[str, str] = {}
    current_section: str | None = None
    buffer: list[str] = []

    for line in str(markdown or "").split("\n"):
        # CRLF documents: only header candidates lose their "\r"; content keeps it verbatim.
        title = _match_section_title(line.removesuffix("\r"), section_titles)
        if title is not None:
            if current_section is not None:
                sections[current_section] = "\n".join(buffer).strip()
            current_section = title
            buffer = []
            continue
        if current_section is not None:
            buffer.append(line)

    if current_section is not None:
        sections[current_section] = "\n".join(buffer).strip()
    return sections


def template_to_markdown(template: Any) -> str:
    structure = validate_template_structure(template)
    parts: list[str] = []
    for header in structure.headers:
        parts.append(f"{'#' * header.level} {header.text}")
        parts.append("")

    for section in structure.sections:
        parts.append(f"## {section.title}{' *' if section.required else ''}")
        parts.append("")
        if section.placeholder:
            parts.append(f"_{section.placeholder}_")
        parts.append("")

    return "\n".join(parts)


def _match_section_title(line: str, section_titles: set[str]) -> str | None:
    match = _SECTION_HEADER_RE.match(line)
    if not match:
        return None
    title = match.group(1)
    if title in section_titles:
        return title
    stripped = title.strip()
    if stripped in section_titles:
        return stripped
    return None
