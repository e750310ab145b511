"""
Annotation and rendering data models

Structures for highlights read from a reader's sidecar metadata, the
groups they are merged into, and the flat record a template sees.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Union


Position = Union[str, Mapping[str, float]]
Separator = Literal[" ", " [...] "]

CONTIGUOUS: Separator = " "
GAP: Separator = " [...] "


def pageno_coerce(value: Any) -> int:
    """
    Page number as an int

    Integral floats and numeric strings ("12", " 12 ", "12.0") are accepted;
    a missing page is 0.

    Raises:
        TypeError: For booleans and non-scalar values
        ValueError: For text that is not a whole number
    """
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError(f"pageno must be a number, got {type(value).__name__}")
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except ValueError:
        raise ValueError(f"pageno is not a number: {value!r}") from None
    if not number.is_integer():
        raise ValueError(f"pageno is not a whole number: {value!r}")
    return int(number)


@dataclass(frozen=True)
class Annotation:
    """
    One highlight (optionally with a note) captured from a book

    Produced by an external import stage; the engine only reads it.

    Attributes:
        text: Highlighted text
        datetime: Creation timestamp ("2024-01-02 13:14:15" or ISO-like)
        pageno: Page number
        note: Optional user note
        color: Optional highlight colour (palette name or hex)
        drawer: Optional decoration ("lighten", "underscore", "strikeout", "invert")
        chapter: Optional chapter title
        pageref: Optional publisher page label, preferred over pageno for display
        pos0: Start position ("node.offset" string or {x, y} coordinates)
        pos1: End position
        id: Optional stable identifier
    """
    text: str = ""
    datetime: str = ""
    pageno: int = 0
    note: Optional[str] = None
    color: Optional[str] = None
    drawer: Optional[str] = None
    chapter: Optional[str] = None
    pageref: Optional[Union[int, str]] = None
    pos0: Optional[Position] = None
    pos1: Optional[Position] = None
    id: Optional[str] = None

    @classmethod
    def fromDict(cls, raw: Mapping[str, Any]) -> "Annotation":
        """
        Build an Annotation from a KOReader-style mapping

        Unknown keys are ignored so sidecar exports with extra metadata load
        unchanged.

        Example:
            >>> Annotation.fromDict({"text": "A", "pageno": 3, "extra": 1}).pageno
            3
        """
        valid_fields = {f.name for f in dataclasses.fields(cls)}
        filtered = {k: v for k, v in raw.items() if k in valid_fields}
        filtered["pageno"] = pageno_coerce(filtered.get("pageno"))
        return cls(**filtered)


@dataclass(frozen=True)
class HighlightGroup:
    """
    A run of annotations rendered as a single block

    Attributes:
        annotations: Non-empty, ordered annotations
        separators: One separator per adjacent pair (len(annotations) - 1),
                    CONTIGUOUS (" ") or GAP (" [...] ")
    """
    annotations: Tuple[Annotation, ...]
    separators: Tuple[Separator, ...] = ()


@dataclass
class ChapterBucket:
    """
    Annotations sharing a chapter label, rebuilt on every render

    Attributes:
        name: Chapter label
        annotations: Annotations in first-seen order, sorted in place later
        startPage: First page after sorting; used only to order buckets
    """
    name: str
    annotations: List[Annotation] = field(default_factory=list)
    startPage: int = 0


@dataclass(frozen=True)
class TemplateData:
    """
    Flat record exposed to {{var}} and {{#cond}} lookups for one group

    Field names are the template variable names.
    """
    pageno: Union[int, str] = 0
    pageref: Optional[Union[int, str]] = None
    date: str = ""
    localeDate: str = ""
    dailyNoteLink: str = ""
    time: str = ""
    datetime: str = ""
    randomHex: str = ""
    chapter: str = ""
    isFirstInChapter: bool = False
    highlight: str = ""
    highlightPlain: str = ""
    note: str = ""
    notes: Tuple[str, ...] = ()
    color: Optional[str] = None
    drawer: Optional[str] = None
    khlBg: Optional[str] = None
    khlFg: Optional[str] = None
    callout: str = "note"

    def value_get(self, key: str) -> Any:
        """Look up a template variable; unknown keys resolve to None"""
        if key in TEMPLATE_VARIABLES:
            return getattr(self, key)
        return None


TEMPLATE_VARIABLES: frozenset = frozenset(f.name for f in dataclasses.fields(TemplateData))


def dataValue_get(data: Union[TemplateData, Mapping[str, Any]], key: str) -> Any:
    """Resolve ``key`` against a TemplateData or any mapping of variables"""
    if isinstance(data, TemplateData):
        return data.value_get(key)
    return data.get(key)


def annotations_fromList(raw: List[Dict[str, Any]]) -> List[Annotation]:
    """Build annotations from a list of mappings, skipping non-mapping entries"""
    return [Annotation.fromDict(item) for item in raw if isinstance(item, Mapping)]
