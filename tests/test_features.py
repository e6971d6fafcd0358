import io

import numpy as np
import pytest

from hog_detector.features import (
    EXTRACTOR_REGISTRY,
    HOGFeatureExtractor,
    create_extractor,
    get_default_parameters,
    load_extractor,
    save_extractor,
    to_gray,
)
from hog_detector.ml_config import HOG

from conftest import SMALL_HOG


def test_registry_and_defaults():
    assert EXTRACTOR_REGISTRY["hog"] is HOGFeatureExtractor
    defaults = get_default_parameters("hog")
    assert defaults["orientations"] == HOG.orientations
    assert defaults["cell_size"] == HOG.cell_size
    assert defaults["window_height"] == HOG.window_height


def test_create_by_tag_or_params_entry():
    by_tag = create_extractor("HOG")
    from_params = create_extractor(params={"feature_type": "hog", "orientations": 12})
    default = create_extractor()

    assert isinstance(by_tag, HOGFeatureExtractor)
    assert from_params.get_parameters()["orientations"] == 12
    assert default.feature_type == "hog"


def test_unknown_feature_type_is_rejected():
    with pytest.raises(ValueError):
        create_extractor("sift")
    with pytest.raises(ValueError):
        get_default_parameters("sift")


@pytest.mark.parametrize("bad", [
    {"bins": 9},
    {"orientations": "many"},
    {"block_norm": "L3"},
    {"transform_sqrt": "maybe"},
    {"cell_size": 20, "window_height": 24, "window_width": 24},
    {"cell_size": 6.7},
    {"orientations": np.float64(9.5)},
])
def test_invalid_parameters_are_rejected(bad):
    with pytest.raises(ValueError):
        HOGFeatureExtractor(bad)


def test_string_values_are_coerced():
    ext = HOGFeatureExtractor({"orientations": "9", "transform_sqrt": "true"})
    assert ext.params["orientations"] == 9
    assert ext.params["transform_sqrt"] is True


def test_integral_floats_are_accepted_for_int_parameters():
    ext = HOGFeatureExtractor({"cell_size": 6.0})
    assert ext.params["cell_size"] == 6
    assert isinstance(ext.params["cell_size"], int)


def test_feature_length_matches_reported_dimension(small_extractor, textured_image):
    feature = small_extractor(textured_image[:24, :24])

    assert feature.dtype == np.float32
    assert feature.ndim == 1
    # 4x4 cells -> 3x3 blocks of 2x2 cells with 9 bins
    assert small_extractor.feature_dim == 3 * 3 * 2 * 2 * 9
    assert feature.size == small_extractor.feature_dim


def test_images_are_resized_to_the_window(small_extractor, textured_image):
    assert small_extractor(textured_image).size == small_extractor.feature_dim


def test_colour_images_are_accepted(small_extractor, textured_image):
    bgr = np.dstack([textured_image] * 3)
    np.testing.assert_allclose(small_extractor(bgr), small_extractor(textured_image), atol=1e-5)


def test_scale_factor_is_inverse_cell_size(small_extractor):
    assert small_extractor.scale_factor() == pytest.approx(1.0 / 6.0)
    assert small_extractor.window_shape == (24, 24)


def test_sliding_window_vector_equals_window_feature(small_extractor, textured_image):
    window = textured_image[:24, :24]
    windows = list(small_extractor.sliding_windows(small_extractor.feature_map(window)))

    assert len(windows) == 1
    origin, vector = windows[0]
    assert origin == (0, 0)
    np.testing.assert_array_equal(vector, small_extractor(window))


def test_sliding_windows_step_one_cell(small_extractor, textured_image):
    windows = list(small_extractor.sliding_windows(small_extractor.feature_map(textured_image)))

    # 8x8 cells -> 7x7 blocks, window spans 3x3 blocks -> 5x5 positions
    assert len(windows) == 25
    origins = [o for o, _ in windows]
    assert origins[0] == (0, 0)
    assert origins[1] == (0, 6)
    assert origins[-1] == (24, 24)
    assert all(v.size == small_extractor.feature_dim for _, v in windows)


def test_feature_map_rejects_tiny_images(small_extractor):
    with pytest.raises(ValueError):
        small_extractor.feature_map(np.zeros((8, 8), dtype=np.uint8))


def test_extract_database_and_pyramid(small_extractor, textured_image):
    db = [(textured_image, 1.0), (textured_image[:24, :24], -1.0)]
    fset = small_extractor.extract_database(db)
    assert len(fset) == 2
    assert all(f.size == small_extractor.feature_dim for f in fset)

    maps = small_extractor.extract_pyramid([textured_image, textured_image[:24, :24]])
    assert maps[0].shape[:2] == (7, 7)
    assert maps[1].shape[:2] == (3, 3)


def test_render_returns_uint8_image(small_extractor, textured_image):
    picture = small_extractor.render(textured_image)
    assert picture.dtype == np.uint8
    assert picture.shape == textured_image.shape


def test_save_load_extractor_round_trip(small_extractor):
    buf = io.StringIO()
    save_extractor(buf, small_extractor)
    buf.seek(0)
    restored = load_extractor(buf)

    assert isinstance(restored, HOGFeatureExtractor)
    assert restored.get_parameters() == small_extractor.get_parameters()
    assert restored.get_parameters()["window_height"] == SMALL_HOG["window_height"]


def test_to_gray_returns_float_in_unit_range(textured_image):
    gray = to_gray(textured_image)
    assert gray.dtype == np.float64
    assert 0.0 <= gray.min() and gray.max() <= 1.0
    with pytest.raises(ValueError):
        to_gray(np.zeros((2, 2, 2, 2)))
