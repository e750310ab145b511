"""
KOHL provenance markers

Every rendered block can be preceded by one comment per source annotation
so a later import can recognise which highlights a note already holds:

    <!-- KOHL {"v":1,"id":"3f0c9a1b2d4e5f60","p":12,"t":"2024-01-02 13:14:15"} -->
    %% KOHL {"v":1,"id":"3f0c9a1b2d4e5f60","p":12,"t":"2024-01-02 13:14:15"} %%

The HTML form survives Markdown rendering invisibly; the ``%%`` form is an
Obsidian comment.
"""

import hashlib
import json
import re
from typing import Any, Dict, Mapping, Optional, Sequence

from ..config import CommentStyle
from ..models.annotations import Annotation
from .strings import whitespace_normalize


MARKER_VERSION = 1

ANY_MARKER = re.compile(r"(?:<!--|%%)\s*KOHL\s*({[\s\S]*?})\s*(?:-->|%%)")
EXCESS_BLANK_LINES = re.compile(r"\n\s*\n(\s*\n)+")


def json_compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def idPart_stringify(value: Any) -> str:
    """Stable text for one hashed field; absent values read "undefined" """
    if value is None:
        return "undefined"
    if isinstance(value, Mapping):
        return json_compact(dict(value))
    return str(value)


def annotationId_compute(annotation: Annotation) -> str:
    """
    Content-derived identifier for an annotation

    SHA-1 over page, both positions, and the whitespace-normalised,
    lower-cased text and note. Line endings are normalised first so the same
    highlight hashes identically on every platform.

    Returns:
        First 16 hex characters of the digest
    """
    text = whitespace_normalize(annotation.text or "").lower()
    note = whitespace_normalize(annotation.note or "").lower()
    payload = "|".join((
        idPart_stringify(annotation.pageno),
        idPart_stringify(annotation.pos0),
        idPart_stringify(annotation.pos1),
        text,
        note,
    ))
    payload = payload.replace("\r\n", "\n").replace("\r", "\n")
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:16]


def marker_wrap(json_meta: str, style: CommentStyle) -> str:
    if style == "html":
        return f"<!-- KOHL {json_meta} -->"
    return f"%% KOHL {json_meta} %%"


def marker_create(annotation: Annotation, style: CommentStyle) -> str:
    """Marker comment for one annotation; unset fields are left out"""
    meta: Dict[str, Any] = {
        "v": MARKER_VERSION,
        "id": annotation.id or annotationId_compute(annotation),
        "p": annotation.pageno,
        "pr": annotation.pageref,
        "pos0": dict(annotation.pos0) if isinstance(annotation.pos0, Mapping) else annotation.pos0,
        "pos1": dict(annotation.pos1) if isinstance(annotation.pos1, Mapping) else annotation.pos1,
        "t": annotation.datetime,
        "c": annotation.color,
        "d": annotation.drawer,
    }
    meta = {key: value for key, value in meta.items() if value is not None}
    return marker_wrap(json_compact(meta), style)


def markers_create(annotations: Sequence[Annotation], style: CommentStyle) -> str:
    """One marker line per annotation, in group order"""
    return "\n".join(marker_create(annotation, style) for annotation in annotations)


def markers_remove(content: str) -> str:
    """Strip every marker and collapse the blank lines left behind"""
    cleaned = ANY_MARKER.sub("", content)
    return EXCESS_BLANK_LINES.sub("\n\n", cleaned)


def markers_convert(content: str, style: str) -> str:
    """
    Rewrite every marker in ``content`` to ``style``

    "none" removes markers. Markers whose payload is not valid JSON object
    text are kept verbatim so no metadata is lost. An unknown style leaves
    the content untouched.
    """
    if style == "none":
        return markers_remove(content)
    if style not in ("html", "md"):
        return content

    def marker_rewrite(match: "re.Match[str]") -> str:
        meta: Optional[Any]
        try:
            meta = json.loads(match.group(1))
        except ValueError:
            meta = None
        if not isinstance(meta, dict):
            return match.group(0)
        return marker_wrap(json_compact(meta), style)  # type: ignore[arg-type]

    return ANY_MARKER.sub(marker_rewrite, content)
