"""
Image variant generator.

Given one rasterized page, derive several images that give OCR more than
one shot at faint print and slanted handwriting:

- v1_light    grayscale, normalized, median-denoised, sharpened
- v2_t150 ..  fixed-threshold binarizations
- vN_invert   polarity-inverted
- rot_<deg>   small-angle rotations of the sharpened base

Variants are built concurrently. A variant that fails to build is logged
and left out; every planned variant file is removed on exit.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Tuple

import numpy as np

from ..config import OCRConfig
from ..logger import get_logger
from ..utils.image_utils import (
    load_image,
    save_image,
    prepare_base,
    sharpen,
    binarize,
    invert,
    rotate,
)
from .rasterizer import remove_quietly

logger = get_logger(__name__)

VariantBuilder = Callable[[np.ndarray], np.ndarray]


@dataclass(frozen=True)
class ImageVariant:
    """A derived page image on disk."""
    name: str
    path: Path


class VariantGenerator:
    """Build OCR variants of a page image."""

    def __init__(self, ocr_config: OCRConfig):
        self.width = ocr_config.variant_width
        self.thresholds = tuple(ocr_config.thresholds)
        self.rotations = tuple(ocr_config.rotations)
        self.workers = max(1, ocr_config.variant_workers)

    def plan(self) -> List[Tuple[str, VariantBuilder]]:
        """Ordered (name, builder) pairs for every variant."""
        specs: List[Tuple[str, VariantBuilder]] = [("v1_light", sharpen)]
        n = 2
        for threshold in self.thresholds:
            specs.append((f"v{n}_t{threshold}", lambda img, t=threshold: binarize(img, t)))
            n += 1
        specs.append((f"v{n}_invert", invert))
        for angle in self.rotations:
            specs.append((f"rot_{angle}", lambda img, a=angle: sharpen(rotate(img, a))))
        return specs

    @staticmethod
    def variant_path(image_path: Path, name: str) -> Path:
        image_path = Path(image_path)
        return image_path.with_name(f"{image_path.stem}_{name}{image_path.suffix}")

    @contextmanager
    def generate(self, image_path: Path) -> Iterator[List[ImageVariant]]:
        """
        Yield the variants that were built successfully, in plan order.

        Usage:
            with generator.generate(page.path) as variants:
                for variant in variants:
                    ...
        """
        specs = self.plan()
        paths = [self.variant_path(image_path, name) for name, _ in specs]
        try:
            yield self._build_all(Path(image_path), specs, paths)
        finally:
            for path in paths:
                remove_quietly(path)

    def _build_all(
        self,
        image_path: Path,
        specs: List[Tuple[str, VariantBuilder]],
        paths: List[Path],
    ) -> List[ImageVariant]:
        image = load_image(image_path)
        if image is None:
            logger.warning(f"Could not read page image {image_path.name}; no variants built")
            return []

        base = prepare_base(image, self.width)
        built: dict[int, ImageVariant] = {}

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {
                executor.submit(self._build_one, base, builder, path): (i, name, path)
                for i, ((name, builder), path) in enumerate(zip(specs, paths))
            }
            for future in as_completed(futures):
                i, name, path = futures[future]
                try:
                    future.result()
                    built[i] = ImageVariant(name=name, path=path)
                except Exception as e:
                    logger.warning(f"Variant {name} of {image_path.name} failed: {e}")

        logger.debug(f"Built {len(built)}/{len(specs)} variants for {image_path.name}")
        return [built[i] for i in sorted(built)]

    @staticmethod
    def _build_one(base: np.ndarray, builder: VariantBuilder, path: Path) -> None:
        if not save_image(builder(base), path):
            raise OSError(f"could not write {path.name}")
