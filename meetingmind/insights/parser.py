"""Splits free-form LLM output into named insight sections."""

import logging
import re
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Checked in order: more specific phrases come before the generic ones they contain
SECTION_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("open_questions", ("open questions", "open question", "unresolved questions", "unresolved issues")),
    ("suggested_questions", ("suggested questions", "questions to ask", "questions")),
    ("meeting_insights", ("meeting insights", "insights", "observations")),
    ("key_points", ("key points", "key takeaways", "highlights")),
    ("summary", ("summary", "overview", "main points")),
    ("decisions", ("key decisions", "decisions made", "decisions", "decision")),
    ("action_items", ("action items", "action item", "actions", "tasks", "to-dos", "todos")),
    ("follow_ups", ("follow-ups", "follow ups", "follow-up", "follow up", "followups", "next steps")),
]

SECTION_NAMES = tuple(name for name, _ in SECTION_KEYWORDS)

BULLET = re.compile(r"^(?:[-•*]|\d+[.)])\s+")
PLACEHOLDER = re.compile(r"^(?:none|n/?a|nothing)(?: recorded| noted| identified)?\.?$", re.IGNORECASE)
MAX_HEADER_WORDS = 5


def _match_keyword(head: str) -> Optional[str]:
    normalized = head.lower().strip(" .:-")
    for section, keywords in SECTION_KEYWORDS:
        for keyword in keywords:
            if normalized.startswith(keyword):
                return section
    return None


def match_header(line: str) -> Optional[Tuple[str, str]]:
    """Return ``(section, inline_content)`` if ``line`` is a section header."""
    stripped = line.strip()
    if not stripped or BULLET.match(stripped):
        return None

    cleaned = stripped.lstrip("#").strip().strip("*_ ")
    head, colon, rest = cleaned.partition(":")
    head = head.strip("*_ ")

    if colon:
        if len(head.split()) > MAX_HEADER_WORDS:
            return None
        section = _match_keyword(head)
        return (section, rest.strip("*_ ")) if section else None

    # Without a colon the whole line must be the header phrase itself
    section = _match_keyword(head)
    if section and any(head.lower().strip(" .-") == keyword
                       for keyword in dict(SECTION_KEYWORDS)[section]):
        return section, ""
    return None


def clean_item(line: str) -> str:
    item = BULLET.sub("", line.strip(), count=1).strip()
    return item.strip("*_ ").strip()


def parse_sections(text: str, default_section: str = "meeting_insights") -> Dict[str, List[str]]:
    """Split ``text`` into sections keyed by :data:`SECTION_NAMES`.

    Lines before the first header, or every line when no header is
    recognized, are kept at the front of ``default_section``.
    """
    if default_section not in SECTION_NAMES:
        raise ValueError(f"Unknown section '{default_section}'")

    sections: Dict[str, List[str]] = {name: [] for name in SECTION_NAMES}
    current: Optional[str] = None
    preamble: List[str] = []

    for line in (text or "").splitlines():
        header = match_header(line)
        if header:
            current, inline = header
            if inline and not PLACEHOLDER.match(inline):
                sections[current].append(inline)
            continue

        item = clean_item(line)
        if not item or PLACEHOLDER.match(item):
            continue
        if current is None:
            preamble.append(item)
        else:
            sections[current].append(item)

    if preamble:
        logger.debug(f"{len(preamble)} lines outside any recognized section go to '{default_section}'")
        sections[default_section] = preamble + sections[default_section]

    return sections
