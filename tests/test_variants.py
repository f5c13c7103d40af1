import cv2
import numpy as np

from quizmark.engines.variants import VariantGenerator
from quizmark.engines.rasterizer import PageRasterizer

from conftest import make_pdf


def write_page_image(tmp_path):
    image = np.full((120, 200, 3), 255, dtype=np.uint8)
    cv2.putText(image, "Q1 x=4", (10, 70), cv2.FONT_HERSHEY_SIMPLEX, 1.2, (0, 0, 0), 2)
    path = tmp_path / "page_001.jpg"
    cv2.imwrite(str(path), image)
    return path


def small_generator(config):
    config.ocr.variant_width = 400
    return VariantGenerator(config.ocr)


def test_plan_names(config):
    names = [name for name, _ in VariantGenerator(config.ocr).plan()]
    assert names == [
        "v1_light", "v2_t150", "v3_t175", "v4_invert",
        "rot_-4", "rot_-2", "rot_0", "rot_2", "rot_4",
    ]


def test_variants_built_then_removed(tmp_path, config):
    source = write_page_image(tmp_path)
    generator = small_generator(config)

    with generator.generate(source) as variants:
        assert [v.name for v in variants][0] == "v1_light"
        assert len(variants) == len(generator.plan())
        assert all(v.path.exists() for v in variants)
        built = [v.path for v in variants]

    assert not any(p.exists() for p in built)
    assert source.exists()


def test_variants_removed_even_when_consumer_fails(tmp_path, config):
    source = write_page_image(tmp_path)
    generator = small_generator(config)
    built = []

    try:
        with generator.generate(source) as variants:
            built = [v.path for v in variants]
            raise RuntimeError("OCR blew up")
    except RuntimeError:
        pass

    assert built
    assert not any(p.exists() for p in built)


def test_unreadable_image_yields_no_variants(tmp_path, config):
    with small_generator(config).generate(tmp_path / "missing.jpg") as variants:
        assert variants == []


def test_rasterizer_cleans_scratch_dir(config):
    pdf = make_pdf(["one", "two"])
    with PageRasterizer(pdf, dpi=50, fmt="png", scratch_root=config.ocr.scratch_root(), prefix="t") as pages:
        assert len(pages) == 2
        paths = [p.path for p in pages]
        assert all(p.exists() for p in paths)
        workdir = paths[0].parent

    assert not workdir.exists()
