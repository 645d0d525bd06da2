import io

import pytest
from PIL import Image

from pdf_compression_service.images import NormalizerSettings, normalize_image, target_size
from conftest import image_bytes


@pytest.mark.parametrize("size", [(1000, 1000), (500, 500), (1, 1000), (1000, 999)])
def test_target_size_inside_box_is_none(size):
    assert target_size(*size) is None


def test_target_size_landscape_pins_width():
    assert target_size(2000, 1000) == (1000, 500)


def test_target_size_portrait_pins_height():
    assert target_size(1200, 2400) == (500, 1000)


def test_target_size_square_uses_height_branch():
    assert target_size(1001, 1001) == (1000, 1000)
    assert target_size(3000, 3000) == (1000, 1000)


def test_target_size_truncates_instead_of_rounding():
    # 1000 * 1001 / 3000 = 333.67
    assert target_size(3000, 1001) == (1000, 333)
    # 1000 * 1001 / 1500 = 667.33 on the portrait side
    assert target_size(1001, 1500) == (667, 1000)


def test_target_size_only_one_side_over_limit():
    assert target_size(1200, 300) == (1000, 250)
    assert target_size(300, 1200) == (250, 1000)


def test_target_size_never_collapses_to_zero():
    assert target_size(100000, 1) == (1000, 1)


def test_target_size_custom_box():
    assert target_size(800, 400, max_width=400, max_height=400) == (400, 200)


def test_small_image_is_reencoded_without_resize():
    src = image_bytes((500, 400), fmt="JPEG", quality=95)
    result = normalize_image(Image.open(io.BytesIO(src)))

    assert not result.resized
    assert (result.width, result.height) == (500, 400)
    assert result.data != src
    with Image.open(io.BytesIO(result.data)) as out:
        assert out.format == "JPEG"
        assert out.size == (500, 400)


def test_landscape_image_is_downscaled():
    result = normalize_image(Image.open(io.BytesIO(image_bytes((2000, 1000)))))

    assert result.resized
    assert (result.width, result.height) == (1000, 500)
    with Image.open(io.BytesIO(result.data)) as out:
        assert out.size == (1000, 500)


def test_portrait_image_is_downscaled():
    result = normalize_image(Image.new("L", (1100, 2300), color=90))

    assert (result.width, result.height) == (478, 1000)
    with Image.open(io.BytesIO(result.data)) as out:
        assert out.mode == "RGB"


def test_alpha_is_discarded():
    src = Image.open(io.BytesIO(image_bytes((500, 500), mode="RGBA", fmt="PNG")))
    assert src.mode == "RGBA"

    result = normalize_image(src)

    with Image.open(io.BytesIO(result.data)) as out:
        assert out.format == "JPEG"
        assert out.mode == "RGB"
        assert out.size == (500, 500)


def test_palette_image_is_resampled_and_flattened():
    src = Image.new("RGB", (2000, 500), color=(200, 30, 30)).convert("P")

    result = normalize_image(src)

    assert (result.width, result.height) == (1000, 250)
    with Image.open(io.BytesIO(result.data)) as out:
        assert out.mode == "RGB"


def test_reencoding_output_again_is_not_identity():
    first = normalize_image(Image.open(io.BytesIO(image_bytes((600, 300), fmt="PNG"))))
    second = normalize_image(Image.open(io.BytesIO(first.data)))

    assert (second.width, second.height) == (600, 300)
    assert second.data != first.data


def test_settings_box_is_honoured():
    settings = NormalizerSettings(max_width=200, max_height=200)
    result = normalize_image(Image.new("RGB", (400, 100)), settings)

    assert (result.width, result.height) == (200, 50)
