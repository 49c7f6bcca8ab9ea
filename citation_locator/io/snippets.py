from pathlib import Path
from typing import Tuple

import numpy as np
import cv2


def crop_with_padding(
    img: np.ndarray,
    bbox_px: Tuple[int, int, int, int],
    pad_px: int
) -> np.ndarray:
    """
    Crop image region with padding, clamped to image bounds.

    Args:
        img: Input image as NumPy array (H, W, C) in BGR format
        bbox_px: Bounding box in pixel coordinates (x0, y0, x1, y1)
        pad_px: Padding to add on all sides in pixels

    Returns:
        Cropped image region as NumPy array

    Raises:
        ValueError: If bbox is invalid or the clamped crop is empty
    """
    x0, y0, x1, y1 = bbox_px
    if x1 <= x0 or y1 <= y0:
        raise ValueError(f"Invalid bbox: x1 must be > x0 and y1 must be > y0, got {bbox_px}")

    h, w = img.shape[:2]
    left = max(0, x0 - pad_px)
    top = max(0, y0 - pad_px)
    right = min(w, x1 + pad_px)
    bottom = min(h, y1 + pad_px)

    if right <= left or bottom <= top:
        raise ValueError(
            f"Clamped bbox is empty: original={bbox_px}, "
            f"clamped=({left},{top},{right},{bottom}), image_shape=({h},{w})"
        )
    return img[top:bottom, left:right]


def highlight_region(
    img: np.ndarray,
    bbox_px: Tuple[int, int, int, int],
    color: Tuple[int, int, int] = (255, 120, 0),
    thickness: int = 2
) -> np.ndarray:
    """Copy of img with a rectangle drawn around bbox_px (BGR color)."""
    out = img.copy()
    x0, y0, x1, y1 = bbox_px
    cv2.rectangle(out, (x0, y0), (x1, y1), color, thickness)
    return out


def save_snippet(
    img: np.ndarray,
    out_dir: Path,
    claim_index: int,
    page_number: int
) -> str:
    """
    Save an evidence snippet with a deterministic filename.

    Args:
        img: Image to save as NumPy array
        out_dir: Output directory path
        claim_index: Position of the claim in the batch (0-padded to 3 digits)
        page_number: One-based page the evidence was found on

    Returns:
        File name of the saved snippet, relative to out_dir

    Raises:
        ValueError: If image is empty
        OSError: If the file cannot be written
    """
    if img.size == 0:
        raise ValueError("Cannot save empty image")

    out_dir.mkdir(parents=True, exist_ok=True)
    filename = f"claim_{claim_index:03d}_p{page_number}.png"
    out_path = out_dir / filename

    if not cv2.imwrite(str(out_path), img):
        raise OSError(f"Failed to write image to {out_path}")
    return filename
