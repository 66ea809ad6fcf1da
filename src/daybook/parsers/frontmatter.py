"""
Front-matter access for satellite notes.

Values are read with PyYAML. Updates rewrite only the ``key:`` line being set
so the rest of the block is preserved verbatim.
"""

import logging
import re
from datetime import date
from typing import List, Optional, Tuple

import yaml

log = logging.getLogger(__name__)

_BLOCK = re.compile(r"^(---\n)([\s\S]*?)(\n---)")


def _field_pattern(name: str) -> "re.Pattern[str]":
    return re.compile(rf"^({re.escape(name)}:[ \t]*)(.*)$", re.MULTILINE)


def _load(content: str) -> Optional[dict]:
    block = _BLOCK.match(content)
    if not block:
        return None
    try:
        data = yaml.safe_load(block.group(2))
    except yaml.YAMLError as e:
        log.warning("Unreadable front-matter: %s", e)
        return None
    return data if isinstance(data, dict) else None


def quote(value: str) -> str:
    """Render ``value`` as a YAML double-quoted scalar on a single line."""
    text = yaml.safe_dump(
        value, default_style='"', allow_unicode=True, width=float("inf")
    ).rstrip("\n")
    if text.endswith("\n..."):
        text = text[:-4]
    return text


def get_field(content: str, name: str) -> Optional[str]:
    """Value of a front-matter field, or None when the field or block is absent."""
    data = _load(content)
    if data is None or name not in data:
        return None
    value = data[name]
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def has_field(content: str, name: str) -> bool:
    data = _load(content)
    return data is not None and name in data


def set_field(content: str, name: str, value: str) -> str:
    """
    Set ``name`` to a quoted ``value``.

    Existing fields are rewritten in place; missing ones are appended to the
    end of the block. Content without front-matter is returned unchanged.
    """
    block = _BLOCK.match(content)
    if not block:
        return content
    start, body, end = block.groups()
    pattern = _field_pattern(name)
    rendered = quote(value)
    if pattern.search(body):
        body = pattern.sub(lambda m: m.group(1) + rendered, body, count=1)
    else:
        body = f"{body}\n{name}: {rendered}" if body else f"{name}: {rendered}"
    return start + body + end + content[block.end():]


def build_frontmatter(fields: List[Tuple[str, str, bool]]) -> str:
    """Render ``(name, value, quoted)`` triples as a front-matter block."""
    lines = ["---"]
    for name, value, quoted in fields:
        lines.append(f"{name}: {quote(value) if quoted else value}")
    lines.append("---")
    return "\n".join(lines)
