"""
Bounding box utilities for evidence highlighting.

Boxes here are TextItem-shaped: ``y`` is the top edge in bottom-up document
coordinates and the box extends downward by ``height``.
"""

from typing import Optional, Sequence, Tuple

from citation_locator.types import TextItem


def item_bounds(item: TextItem) -> Tuple[float, float, float, float]:
    """(left, bottom, right, top) of an item, bottom-up."""
    return (item.x, item.y - item.height, item.x + item.width, item.y)


def union_bbox(
    bbox1: Tuple[float, float, float, float],
    bbox2: Tuple[float, float, float, float]
) -> Tuple[float, float, float, float]:
    """
    Compute the union (minimum enclosing box) of two bounding boxes.

    Args:
        bbox1: First bounding box (x0, y0, x1, y1)
        bbox2: Second bounding box (x0, y0, x1, y1)

    Returns:
        Union bounding box containing both inputs
    """
    x0 = min(bbox1[0], bbox2[0])
    y0 = min(bbox1[1], bbox2[1])
    x1 = max(bbox1[2], bbox2[2])
    y1 = max(bbox1[3], bbox2[3])
    return (x0, y0, x1, y1)


def union_items(items: Sequence[TextItem], text: Optional[str] = None) -> Optional[TextItem]:
    """
    Merge the items of a match into one enclosing TextItem.

    Args:
        items: Matched items, all on the same page
        text: Text to carry on the merged item (defaults to the item texts joined)

    Returns:
        Enclosing TextItem, or None when items is empty
    """
    if not items:
        return None

    bounds = item_bounds(items[0])
    for item in items[1:]:
        bounds = union_bbox(bounds, item_bounds(item))
    left, bottom, right, top = bounds

    if text is None:
        text = " ".join(item.text for item in items)
    return TextItem(x=left, y=top, width=right - left, height=top - bottom, text=text)
