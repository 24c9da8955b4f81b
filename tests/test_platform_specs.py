import pytest

from backend.errors import InvalidParameterError
from backend.platforms import PlatformRegistry


@pytest.fixture(scope="module")
def registry():
    return PlatformRegistry()


def test_bundled_specs_load(registry):
    spec = registry.require("instagram-post")
    assert spec.ratio == "1:1"
    assert spec.recommended_size == (1080, 1080)
    assert "instagram-story" in registry.by_category("social")


def test_every_category_scene_exists(registry):
    for scenes in registry.categories.values():
        for scene in scenes:
            assert registry.get(scene) is not None


def test_unknown_scene(registry):
    assert registry.get("myspace-banner") is None
    with pytest.raises(InvalidParameterError):
        registry.require("myspace-banner")


def test_recommended_size_is_valid(registry):
    result = registry.validate_output_size((1080, 1080), "instagram-post")
    assert result.valid
    assert result.is_recommended_size
    assert result.recommendation is None


def test_valid_size_gets_recommendation(registry):
    result = registry.validate_output_size((640, 640), "instagram-post")
    assert result.valid
    assert result.recommendation == "Use 1080x1080 for best results"


def test_ratio_mismatch(registry):
    result = registry.validate_output_size((1080, 1000), "instagram-post")
    assert not result.valid
    assert result.error.startswith("Ratio mismatch")


def test_size_bounds(registry):
    assert registry.validate_output_size((100, 100), "instagram-post").error.startswith(
        "Size too small"
    )
    assert registry.validate_output_size((2000, 2000), "instagram-post").error.startswith(
        "Size too large"
    )


def test_custom_config(tmp_path):
    config = tmp_path / "platforms.yaml"
    config.write_text(
        "platforms:\n"
        "  banner:\n"
        "    name: Banner\n"
        "    ratio: '3:1'\n"
        "    recommended_size: [1500, 500]\n",
        encoding="utf-8",
    )
    registry = PlatformRegistry(str(config))
    assert registry.all_scenes() == ["banner"]
    assert registry.validate_output_size((3000, 1000), "banner").valid
