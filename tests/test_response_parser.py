import pytest

from backend.errors import AIParseError, AITimeoutError
from backend.vision.response_parser import (
    categorize_error,
    extract_fenced_json,
    extract_json_object,
    require_fields,
)


def test_extract_json_object_ignores_surrounding_prose():
    content = 'Here is my suggestion:\n{"crop_params": {"x": 1}}\nHope it helps!'
    assert extract_json_object(content) == {"crop_params": {"x": 1}}


def test_extract_json_object_without_braces():
    with pytest.raises(AIParseError, match="No JSON object"):
        extract_json_object("I cannot help with that image.")


def test_extract_json_object_invalid_json():
    with pytest.raises(AIParseError, match="invalid JSON"):
        extract_json_object("{crop_params: nope}")


def test_extract_fenced_json_prefers_code_block():
    content = 'Sure.\n```json\n{"analysis": "tight", "crop_params": {}}\n```'
    assert extract_fenced_json(content)["analysis"] == "tight"


def test_extract_fenced_json_falls_back_to_whole_reply():
    assert extract_fenced_json('  {"a": 1}  ') == {"a": 1}


def test_extract_fenced_json_rejects_non_object():
    with pytest.raises(AIParseError):
        extract_fenced_json("[1, 2, 3]")


def test_require_fields_reports_missing():
    with pytest.raises(AIParseError, match="reason, details"):
        require_fields({"crop_params": {}}, ("reason", "details"))


def test_require_fields_rejects_non_object_crop_params():
    with pytest.raises(AIParseError, match="crop_params"):
        require_fields({"analysis": "x", "crop_params": "0,0,10,10"}, ("analysis", "crop_params"))


@pytest.mark.parametrize(
    "error, code",
    [
        (AITimeoutError("slow"), "TIMEOUT"),
        (AIParseError("bad"), "PARSE_ERROR"),
        (RuntimeError("Rate limit reached for gpt-4o"), "RATE_LIMIT"),
        (RuntimeError("Request timed out"), "TIMEOUT"),
        (RuntimeError("Invalid image data"), "INVALID_IMAGE"),
        (RuntimeError("boom"), "UNKNOWN"),
    ],
)
def test_categorize_error(error, code):
    assert categorize_error(error) == code
