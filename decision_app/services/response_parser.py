import re
from typing import List, Optional, Tuple
from decision_app.models.decision_tree import ParsedNode

FALLBACK_OPTIONS = ["Tell me more", "Explore alternatives", "Consider other factors"]
FALLBACK_DECISION = "Based on the considerations, a decision has been reached."
FALLBACK_REFLECTION = "This recommendation reflects the considerations explored along your decision path."

_HEADING_RE = re.compile(r"^#+\s*")
_TITLE_LABEL_RE = re.compile(r"^[*_]*title[*_]*\s*:[*_\s]*", re.IGNORECASE)
_BULLET_RE = re.compile(r"^[-*•]\s+")
_NUMBERED_RE = re.compile(r"^\d+\.\s+")

_DECISION_LABEL_RE = re.compile(
    r"^[*_#\s]*(?:final\s+)?(?:decision\s+)?(?:recommendation|decision)[*_\s]*:[*_\s]*",
    re.IGNORECASE
)
_REFLECTION_LABEL_RE = re.compile(r"^[*_#\s]*reflection[*_\s]*:[*_\s]*", re.IGNORECASE | re.MULTILINE)
_NUMBERED_SECTIONS_RE = re.compile(r"^\s*1\.\s*(.+?)\n\s*2\.\s*(.+)$", re.DOTALL)


def _strip_list_marker(line: str) -> Optional[str]:
    """Returns the item text if the line is a list item, otherwise None."""
    for pattern in (_BULLET_RE, _NUMBERED_RE):
        match = pattern.match(line)
        if match:
            return line[match.end():].strip()
    return None


def _strip_emphasis(text: str) -> str:
    return text.strip().strip("*_").strip()


def parse_node(text: Optional[str], fallback_title: str) -> ParsedNode:
    """
    Classifies the lines of a loosely formatted completion into a title,
    a body and a list of options. Never raises; malformed text degrades to
    the fallback title and the generic option set.
    """
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]

    title = fallback_title
    cursor = 0
    if lines:
        first = lines[0]
        if _HEADING_RE.match(first):
            title = _strip_emphasis(_HEADING_RE.sub("", first, count=1)) or fallback_title
            cursor = 1
        elif _TITLE_LABEL_RE.match(first):
            title = _strip_emphasis(_TITLE_LABEL_RE.sub("", first, count=1)) or fallback_title
            cursor = 1
        elif _strip_list_marker(first) is None:
            title = _strip_emphasis(first) or fallback_title
            cursor = 1

    options: List[str] = []
    first_option_idx = -1
    for i in range(cursor, len(lines)):
        item = _strip_list_marker(lines[i])
        if item is None:
            continue
        if first_option_idx == -1:
            first_option_idx = i
        if item:
            options.append(item)

    if options:
        body = "\n".join(lines[cursor:first_option_idx]).strip()
        return ParsedNode(title=title, body=body, options=options)

    body = "\n".join(lines[cursor:]).strip()
    return ParsedNode(title=title, body=body, options=list(FALLBACK_OPTIONS), used_fallback_options=True)


def parse_final_decision(text: Optional[str]) -> Tuple[str, str]:
    """
    Splits a conclusion into (decision, reflection). Understands labelled
    sections ("Recommendation:" / "Reflection:") and a numbered "1." / "2."
    layout. Anything else puts the whole text into the decision.
    """
    content = (text or "").strip()

    reflection_match = _REFLECTION_LABEL_RE.search(content)
    if reflection_match:
        head = content[:reflection_match.start()].strip()
        decision = _DECISION_LABEL_RE.sub("", head, count=1).strip()
        reflection = content[reflection_match.end():].strip()
        if decision and reflection:
            return decision, reflection

    numbered = _NUMBERED_SECTIONS_RE.match(content)
    if numbered:
        decision = _DECISION_LABEL_RE.sub("", numbered.group(1).strip(), count=1).strip()
        reflection = _REFLECTION_LABEL_RE.sub("", numbered.group(2).strip(), count=1).strip()
        if decision and reflection:
            return decision, reflection

    return content or FALLBACK_DECISION, FALLBACK_REFLECTION
