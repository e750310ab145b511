"""
Annotation rendering: chapters → groups → Markdown blocks

Pipeline for one book:

    1. bucket annotations by chapter (first-seen order)
    2. sort each bucket, note its start page
    3. order buckets by start page
    4. split each bucket into highlight groups
    5. render each group through a compiled template, optionally preceded
       by provenance markers, and join the blocks with blank lines

The comparator and the grouper are injectable so callers can plug in a
different ordering or gap policy.
"""

import dataclasses
import re
import secrets
from functools import cmp_to_key
from typing import Callable, Dict, List, Optional, Sequence

from ..config import appsettings, CommentStyle
from ..models.annotations import (
    Annotation,
    ChapterBucket,
    HighlightGroup,
    Separator,
    TemplateData,
    CONTIGUOUS,
)
from .compiler import RenderFn
from .dates import date_format
from .grouper import annotations_compare, highlights_groupSuccessive
from .log import LOG
from .markers import markers_create
from .strings import html_escape
from .styling import color_normalize, bgVar_make, fgVar_make, highlight_style


Comparator = Callable[[Annotation, Annotation], int]
Grouper = Callable[[Sequence[Annotation], float], Sequence[HighlightGroup]]

PARAGRAPH_BREAK = "<br><br>"
GAP_MARKER = "[...]"
NOTE_SEPARATOR = "\n---\n"
BLOCK_SEPARATOR = "\n\n"
DIVIDER_SEPARATOR = "\n\n---\n\n"
TIME_MASK = "{YYYY}/{MM}/{DD} {HH}:{mm}:{ss}"

BLANK_LINE = re.compile(r"\r?\n\s*\r?\n")


def blocks_join(blocks: Sequence[str], separators: Sequence[Separator]) -> str:
    """
    Join rendered blocks with a group's separators

    " " joins with one space. A gap separator makes sure the text so far ends
    in a paragraph break, then inserts "[...]" and another break.

    Example:
        >>> blocks_join(["A", "B"], [" [...] "])
        'A<br><br>[...]<br><br>B'
    """
    if not blocks:
        return ""
    out = blocks[0]
    for index, block in enumerate(blocks[1:]):
        separator = separators[index] if index < len(separators) else CONTIGUOUS
        if separator == CONTIGUOUS:
            out += f" {block}"
        else:
            if not out.endswith(PARAGRAPH_BREAK):
                out += PARAGRAPH_BREAK
            out += f"{GAP_MARKER}{PARAGRAPH_BREAK}{block}"
    return out


def highlightText_merge(group: Sequence[Annotation], separators: Sequence[Separator]) -> str:
    """Styled text of every annotation, joined"""
    styled = [highlight_style(a.text or "", a.color, a.drawer) for a in group]
    return blocks_join(styled, separators)


def paragraphs_escape(text: str) -> str:
    """Blank-line separated paragraphs, HTML-escaped, joined with <br><br>"""
    paragraphs = (html_escape(p.strip()) for p in BLANK_LINE.split(text or ""))
    return PARAGRAPH_BREAK.join(p for p in paragraphs if p)


def highlightTextPlain_merge(group: Sequence[Annotation], separators: Sequence[Separator]) -> str:
    """Escaped, unstyled text of every annotation, joined"""
    return blocks_join([paragraphs_escape(a.text) for a in group], separators)


def notes_merge(group: Sequence[Annotation]) -> str:
    """Non-blank notes joined with a horizontal rule; "" when there are none"""
    notes = [a.note for a in group if isinstance(a.note, str) and a.note.strip()]
    return NOTE_SEPARATOR.join(notes)


def randomHex_make() -> str:
    return secrets.token_hex(2)


def templateData_build(
    group: Sequence[Annotation],
    separators: Optional[Sequence[Separator]] = None,
    is_first_in_chapter: bool = False,
) -> TemplateData:
    """
    Flatten one highlight group into the record a template sees

    Page, dates, chapter and colour come from the group's first annotation;
    text and notes are merged over the whole group.
    """
    head = group[0]
    if separators is None:
        separators = (CONTIGUOUS,) * (len(group) - 1)
    color = color_normalize(head.color)
    pageno = head.pageref if head.pageref is not None else head.pageno
    return TemplateData(
        pageno=pageno if pageno is not None else 0,
        pageref=head.pageref,
        date=date_format(head.datetime),
        localeDate=date_format(head.datetime, "locale"),
        dailyNoteLink=date_format(head.datetime, "daily-note"),
        time=date_format(head.datetime, TIME_MASK),
        datetime=head.datetime or "",
        randomHex=randomHex_make(),
        chapter=(head.chapter or "").strip(),
        isFirstInChapter=is_first_in_chapter,
        highlight=highlightText_merge(group, separators),
        highlightPlain=highlightTextPlain_merge(group, separators),
        note=notes_merge(group),
        notes=tuple(a.note for a in group if isinstance(a.note, str)),
        color=color,
        drawer=head.drawer,
        khlBg=bgVar_make(color) if color else None,
        khlFg=fgVar_make(color) if color else None,
        callout=color or "note",
    )


def group_render(
    compiled: RenderFn,
    annotations: Sequence[Annotation],
    separators: Optional[Sequence[Separator]] = None,
    is_first_in_chapter: bool = False,
) -> str:
    """Render one highlight group through a compiled template"""
    return compiled(templateData_build(annotations, separators, is_first_in_chapter))


def chapters_bucket(
    annotations: Sequence[Annotation], comparator: Comparator
) -> List[ChapterBucket]:
    """
    Bucket annotations by chapter, sort each bucket, order buckets by start page

    Annotations without a chapter land in the "Chapter Unknown" bucket and
    carry that label from here on.
    """
    buckets: Dict[str, ChapterBucket] = {}
    for annotation in annotations:
        name = (annotation.chapter or "").strip() or appsettings.unknown_chapter_label
        bucket = buckets.setdefault(name, ChapterBucket(name=name))
        if annotation.chapter != name:
            annotation = dataclasses.replace(annotation, chapter=name)
        bucket.annotations.append(annotation)

    ordered = list(buckets.values())
    for bucket in ordered:
        bucket.annotations.sort(key=cmp_to_key(comparator))
        bucket.startPage = bucket.annotations[0].pageno if bucket.annotations else 0
    ordered.sort(key=lambda bucket: bucket.startPage)
    return ordered


def annotations_render(
    annotations: Sequence[Annotation],
    compiled: RenderFn,
    comment_style: CommentStyle,
    max_highlight_gap: float,
    *,
    comparator: Comparator = annotations_compare,
    grouper: Grouper = highlights_groupSuccessive,
    divider: bool = False,
) -> str:
    """
    Render a book's annotations to Markdown

    Args:
        annotations: Annotations in any order
        compiled: Render function from ``compile``
        comment_style: "html" / "md" to prefix provenance markers, "none" to skip
        max_highlight_gap: Largest distance still merged into one group
        comparator: In-chapter ordering (cmp-style)
        grouper: Splits a sorted bucket into highlight groups
        divider: Join blocks with a Markdown rule instead of a blank line

    Returns:
        Rendered blocks joined together, "" for no annotations
    """
    if not annotations:
        return ""

    blocks: List[str] = []
    for bucket in chapters_bucket(annotations, comparator):
        if not bucket.annotations:
            continue
        groups = grouper(bucket.annotations, max_highlight_gap)
        for index, group in enumerate(groups):
            rendered = group_render(
                compiled, group.annotations, group.separators, is_first_in_chapter=index == 0
            )
            if comment_style != "none":
                rendered = f"{markers_create(group.annotations, comment_style)}\n{rendered}"
            blocks.append(rendered)
        LOG(f"Chapter '{bucket.name}': {len(groups)} highlight groups", level=2)

    return (DIVIDER_SEPARATOR if divider else BLOCK_SEPARATOR).join(blocks)
