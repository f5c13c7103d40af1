"""
Image processing utility functions.

OpenCV operations used to build OCR-friendly page images.
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

_SHARPEN_KERNEL = np.array(
    [[0, -1, 0],
     [-1, 5, -1],
     [0, -1, 0]],
    dtype=np.float32,
)


def load_image(path: Path, flags: int = cv2.IMREAD_COLOR) -> Optional[np.ndarray]:
    """
    Load image from file with proper Unicode path handling.

    Returns:
        Loaded image as numpy array, or None if failed
    """
    path = Path(path)
    if not path.exists():
        return None
    data = np.fromfile(str(path), dtype=np.uint8)
    return cv2.imdecode(data, flags)


def save_image(
    image: np.ndarray,
    path: Path,
    quality: int = 95,
    compression: int = 9
) -> bool:
    """
    Save image to file with proper Unicode path handling.

    Args:
        image: Image to save
        path: Output path (format from suffix)
        quality: JPEG quality (0-100)
        compression: PNG compression level (0-9)

    Returns:
        True if successful, False otherwise
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    ext = path.suffix.lower()
    if ext == ".png":
        params = [cv2.IMWRITE_PNG_COMPRESSION, compression]
    elif ext in (".jpg", ".jpeg"):
        params = [cv2.IMWRITE_JPEG_QUALITY, quality]
    else:
        params = []

    success, data = cv2.imencode(ext, image, params)
    if success:
        data.tofile(str(path))
    return bool(success)


def resize_to_width(image: np.ndarray, width: int) -> np.ndarray:
    """Resize keeping aspect ratio."""
    h, w = image.shape[:2]
    if w == width or w == 0:
        return image
    height = max(1, int(round(h * width / w)))
    interpolation = cv2.INTER_AREA if width < w else cv2.INTER_CUBIC
    return cv2.resize(image, (width, height), interpolation=interpolation)


def to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def normalize_contrast(gray: np.ndarray) -> np.ndarray:
    """Stretch intensities to the full 0-255 range."""
    return cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)


def median_denoise(gray: np.ndarray, ksize: int = 3) -> np.ndarray:
    return cv2.medianBlur(gray, ksize)


def sharpen(gray: np.ndarray) -> np.ndarray:
    return cv2.filter2D(gray, -1, _SHARPEN_KERNEL)


def binarize(gray: np.ndarray, threshold: int) -> np.ndarray:
    """Fixed-threshold binarization: >= threshold goes white."""
    _, out = cv2.threshold(gray, threshold - 1, 255, cv2.THRESH_BINARY)
    return out


def invert(gray: np.ndarray) -> np.ndarray:
    return cv2.bitwise_not(gray)


def rotate(image: np.ndarray, angle: float) -> np.ndarray:
    """
    Rotate clockwise by angle degrees, expanding the canvas and filling
    the new corners with white.
    """
    if angle == 0:
        return image.copy()

    h, w = image.shape[:2]
    center = (w / 2, h / 2)
    matrix = cv2.getRotationMatrix2D(center, -angle, 1.0)

    cos, sin = abs(matrix[0, 0]), abs(matrix[0, 1])
    new_w = int(h * sin + w * cos)
    new_h = int(h * cos + w * sin)
    matrix[0, 2] += new_w / 2 - center[0]
    matrix[1, 2] += new_h / 2 - center[1]

    return cv2.warpAffine(
        image,
        matrix,
        (new_w, new_h),
        flags=cv2.INTER_CUBIC,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=255,
    )


def prepare_base(image: np.ndarray, width: Optional[int] = None) -> np.ndarray:
    """Resize (optional), grayscale, contrast-normalize and median-denoise."""
    if width:
        image = resize_to_width(image, width)
    return median_denoise(normalize_contrast(to_gray(image)))


def encode_png(image: np.ndarray) -> bytes:
    success, data = cv2.imencode(".png", image, [cv2.IMWRITE_PNG_COMPRESSION, 9])
    if not success:
        raise ValueError("PNG encoding failed")
    return data.tobytes()


def base64_length(n: int) -> int:
    """Characters needed to base64-encode n bytes (with padding)."""
    return 4 * ((n + 2) // 3)


def png_data_uri_with_cap(
    image: np.ndarray,
    max_bytes: int,
    min_width: int = 900,
    shrink: float = 0.85,
) -> Tuple[str, int]:
    """
    Encode as a PNG data URI whose base64 payload is at most max_bytes.

    Shrinks the width by `shrink` while the encoded payload is over the cap
    and the width is still above min_width; the last encoding is returned
    even if it never fits.

    Returns:
        (data URI, final width)
    """
    width = image.shape[1]
    payload = encode_png(image)
    while base64_length(len(payload)) > max_bytes and width > min_width:
        width = int(width * shrink)
        payload = encode_png(resize_to_width(image, width))
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:image/png;base64,{encoded}", width
