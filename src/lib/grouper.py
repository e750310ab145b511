"""
Ordering and grouping of annotations inside a chapter

Default collaborators for ``annotations_render``: a total-order comparator
and a function that partitions sorted annotations into highlight groups.

Positions come in two shapes:
    "node.offset"      text node path plus character offset ("/body/p[3]/text().17")
    {"x": .., "y": ..} page coordinates (fixed-layout documents)
"""

import math
import re
from typing import List, Mapping, Optional, Sequence, Tuple

from ..config import appsettings
from ..models.annotations import (
    Annotation,
    HighlightGroup,
    Position,
    Separator,
    CONTIGUOUS,
    GAP,
)
from .dates import date_parse


NODE_OFFSET = re.compile(r"^(.+)\.(\d+)$")
DIGITS = re.compile(r"\d+")

# Coordinate highlights closer than this vertically count as one run
COORD_PROXIMITY = 50

ParsedPosition = Tuple[str, int]


def coordinates_get(pos: Optional[Position]) -> Optional[Tuple[float, float]]:
    """(x, y) of a coordinate position, None for anything else"""
    if isinstance(pos, Mapping) and "x" in pos and "y" in pos:
        try:
            return float(pos["x"]), float(pos["y"])
        except (TypeError, ValueError):
            return None
    return None


def position_parse(pos: Optional[Position]) -> Optional[ParsedPosition]:
    """
    Parse a position into (node, offset)

    Example:
        >>> position_parse("/body/p[2]/text().15")
        ('/body/p[2]/text()', 15)
        >>> position_parse({"x": 10.4, "y": 99.6})
        ('coord_10_100', 0)
        >>> position_parse("garbage") is None
        True
    """
    if not pos:
        return None

    coords = coordinates_get(pos)
    if coords is not None:
        x, y = coords
        return f"coord_{round(x)}_{round(y)}", 0

    if isinstance(pos, str):
        match = NODE_OFFSET.match(pos)
        if match:
            return match.group(1), int(match.group(2))
    return None


def numericKey_get(node: str) -> List[int]:
    return [int(n) for n in DIGITS.findall(node)]


def sign(value: float) -> int:
    return (value > 0) - (value < 0)


def annotations_compare(a: Annotation, b: Annotation) -> int:
    """
    Total order for annotations of one chapter

    Page first, then the start position: node paths compare by their
    embedded numbers, then by how many numbers they carry, then lexically;
    then the offset. Positioned annotations sort before unpositioned ones on
    the same page. Creation time breaks the remaining ties.

    Returns:
        Negative, zero or positive, in the manner of a ``cmp`` function
    """
    if a.pageno != b.pageno:
        return sign(a.pageno - b.pageno)

    pos_a = position_parse(a.pos0)
    pos_b = position_parse(b.pos0)

    if pos_a and pos_b:
        node_a, offset_a = pos_a
        node_b, offset_b = pos_b
        if node_a != node_b:
            key_a = numericKey_get(node_a)
            key_b = numericKey_get(node_b)
            for left, right in zip(key_a, key_b):
                if left != right:
                    return sign(left - right)
            if len(key_a) != len(key_b):
                return sign(len(key_a) - len(key_b))
            return -1 if node_a < node_b else 1
        if offset_a != offset_b:
            return sign(offset_a - offset_b)
    elif pos_a:
        return -1
    elif pos_b:
        return 1

    date_a = date_parse(a.datetime)
    date_b = date_parse(b.datetime)
    if date_a is not None and date_b is not None:
        try:
            return sign((date_a - date_b).total_seconds())
        except TypeError:
            # naive vs aware timestamps are not comparable
            return 0
    return 0



def highlights_distance(a: Annotation, b: Annotation) -> float:
    """
    Distance from the end of ``a`` to the start of ``b``

    - text positions on the same node: characters between them
    - coordinate positions on the same page: 0 when vertically close
    - no positions at all: difference in pages
    - anything else (other page, other node, mixed shapes): infinity
    """
    a_positioned = bool(a.pos0 or a.pos1)
    b_positioned = bool(b.pos0 or b.pos1)

    if not a_positioned and not b_positioned:
        return float(abs(b.pageno - a.pageno))
    if a.pageno != b.pageno:
        return math.inf

    coords_a = coordinates_get(a.pos0)
    coords_b = coordinates_get(b.pos0)
    if coords_a is not None and coords_b is not None:
        return 0.0 if abs(coords_a[1] - coords_b[1]) < COORD_PROXIMITY else math.inf

    end = position_parse(a.pos1)
    start = position_parse(b.pos0)
    if not end or not start or end[0] != start[0]:
        return math.inf
    return float(start[1] - end[1])


def gap_isWithin(a: Annotation, b: Annotation, max_gap: float) -> bool:
    """True when ``b`` continues ``a`` closely enough to share a group"""
    return highlights_distance(a, b) <= max_gap


def separator_pick(distance: float) -> Separator:
    """Tight join for (almost) touching highlights, gap marker otherwise"""
    return CONTIGUOUS if distance <= appsettings.contiguous_gap else GAP


def highlights_groupSuccessive(
    annotations: Sequence[Annotation], max_gap: float
) -> List[HighlightGroup]:
    """
    Partition sorted annotations into highlight groups

    A new group starts whenever the next annotation is not within
    ``max_gap`` of the previous one. Inside a group each adjacent pair gets a
    separator: " " when the highlights (nearly) touch, " [...] " otherwise.

    Example:
        Two highlights 120 characters apart with max_gap=250 form one group
        with separators (" [...] ",).
    """
    groups: List[HighlightGroup] = []
    current: List[Annotation] = []
    separators: List[Separator] = []

    for annotation in annotations:
        if current:
            distance = highlights_distance(current[-1], annotation)
            if distance <= max_gap:
                separators.append(separator_pick(distance))
            else:
                groups.append(HighlightGroup(tuple(current), tuple(separators)))
                current, separators = [], []
        current.append(annotation)

    if current:
        groups.append(HighlightGroup(tuple(current), tuple(separators)))
    return groups
