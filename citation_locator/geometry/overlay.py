"""
Evidence overlay geometry.

Maps a TextItem in document units (bottom-up y axis) onto a rendered page
image (top-down y axis):

    raw_x = x * scale.x
    raw_y = image_height - y * scale.y
    raw_w = width * scale.x
    raw_h = height * scale.y

Every function returns None instead of propagating NaN or infinity when the
render context is unusable (non-finite or non-positive scale or dimensions),
which is the normal state before an image has loaded.
"""

from typing import Optional, Tuple

import numpy as np

from citation_locator.types import (
    EvidenceRect,
    OriginPercent,
    RenderScale,
    ScrollTarget,
    TextItem,
)


def _finite_positive(*values: float) -> bool:
    arr = np.asarray(values, dtype=float)
    return bool(np.all(np.isfinite(arr)) and np.all(arr > 0))


def is_valid_overlay_geometry(scale: RenderScale, image_width: float, image_height: float) -> bool:
    """Scale and image dimensions must all be finite and strictly positive."""
    return _finite_positive(scale.x, scale.y, image_width, image_height)


def _raw_box(
    item: TextItem,
    scale: RenderScale,
    image_height: float
) -> Optional[Tuple[float, float, float, float]]:
    box = np.array([
        item.x * scale.x,
        image_height - item.y * scale.y,
        item.width * scale.x,
        item.height * scale.y,
    ], dtype=float)
    if not np.all(np.isfinite(box)):
        return None
    return tuple(float(v) for v in box)


def _clamp(value: float, low: float, high: float) -> float:
    return float(np.clip(value, low, high))


def to_percent_rect(
    item: TextItem,
    scale: RenderScale,
    image_width: float,
    image_height: float
) -> Optional[EvidenceRect]:
    """
    Position of an item as percentages of the rendered image.

    The near and far edges are clamped to the image independently, so a box
    that hangs off the page shrinks instead of shifting.

    Args:
        item: Matched text item in document units
        scale: Document units to image pixels
        image_width: Rendered image width in pixels
        image_height: Rendered image height in pixels

    Returns:
        EvidenceRect in percent, or None for an unusable render context
    """
    if not is_valid_overlay_geometry(scale, image_width, image_height):
        return None
    raw = _raw_box(item, scale, image_height)
    if raw is None:
        return None
    raw_x, raw_y, raw_w, raw_h = raw

    left = _clamp(raw_x, 0, image_width)
    right = max(_clamp(raw_x + raw_w, 0, image_width), left)
    top = _clamp(raw_y, 0, image_height)
    bottom = max(_clamp(raw_y + raw_h, 0, image_height), top)

    return EvidenceRect(
        left=left / image_width * 100,
        top=top / image_height * 100,
        width=(right - left) / image_width * 100,
        height=(bottom - top) / image_height * 100,
    )


def compute_scroll_target(
    item: TextItem,
    scale: RenderScale,
    image_width: float,
    image_height: float,
    zoom: float,
    container_width: float,
    container_height: float
) -> Optional[ScrollTarget]:
    """
    Scroll offsets that center an item in a scrollable container.

    Returns:
        ScrollTarget clamped to [0, max(0, size * zoom - container)] per axis,
        or None for an unusable render context, zoom or container size
    """
    if not is_valid_overlay_geometry(scale, image_width, image_height):
        return None
    if not _finite_positive(zoom, container_width, container_height):
        return None
    raw = _raw_box(item, scale, image_height)
    if raw is None:
        return None
    raw_x, raw_y, raw_w, raw_h = raw

    center_x = (raw_x + raw_w / 2) * zoom
    center_y = (raw_y + raw_h / 2) * zoom
    max_left = max(0.0, image_width * zoom - container_width)
    max_top = max(0.0, image_height * zoom - container_height)

    return ScrollTarget(
        scroll_left=_clamp(center_x - container_width / 2, 0, max_left),
        scroll_top=_clamp(center_y - container_height / 2, 0, max_top),
    )


def compute_origin_percent(
    item: TextItem,
    scale: RenderScale,
    image_width: float,
    image_height: float
) -> Optional[OriginPercent]:
    """Center of an item as percentages of the image, clamped to [0, 100]."""
    if not is_valid_overlay_geometry(scale, image_width, image_height):
        return None
    raw = _raw_box(item, scale, image_height)
    if raw is None:
        return None
    raw_x, raw_y, raw_w, raw_h = raw

    return OriginPercent(
        x_percent=_clamp((raw_x + raw_w / 2) / image_width * 100, 0, 100),
        y_percent=_clamp((raw_y + raw_h / 2) / image_height * 100, 0, 100),
    )


def to_pixel_bbox(
    item: TextItem,
    scale: RenderScale,
    image_width: int,
    image_height: int
) -> Optional[Tuple[int, int, int, int]]:
    """
    Integer pixel box (x0, y0, x1, y1) of an item, for cropping.

    Floor on the near edge and ceil on the far edge so the crop covers the
    whole item; both are clamped to the image.
    """
    if not is_valid_overlay_geometry(scale, image_width, image_height):
        return None
    raw = _raw_box(item, scale, image_height)
    if raw is None:
        return None
    raw_x, raw_y, raw_w, raw_h = raw

    x0 = int(np.clip(np.floor(raw_x), 0, image_width))
    y0 = int(np.clip(np.floor(raw_y), 0, image_height))
    x1 = int(np.clip(np.ceil(raw_x + raw_w), 0, image_width))
    y1 = int(np.clip(np.ceil(raw_y + raw_h), 0, image_height))
    return (x0, y0, max(x1, x0), max(y1, y0))
