import pytest
from starlette.requests import Request

from api.dependencies import get_client_ip


def _request(headers=None, client=("10.0.0.1", 1234)):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "headers": raw, "client": client})


@pytest.mark.parametrize(
    "headers,client,expected",
    [
        ({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}, ("10.0.0.1", 1234), "203.0.113.7"),
        (
            {"X-Forwarded-For": "  , 1.2.3.4", "X-Real-IP": "198.51.100.2"},
            ("10.0.0.1", 1234),
            "198.51.100.2",
        ),
        ({"X-Real-IP": " 198.51.100.9 "}, ("10.0.0.1", 1234), "198.51.100.9"),
        ({}, ("10.0.0.1", 1234), "10.0.0.1"),
        ({"X-Forwarded-For": " , "}, None, "unknown"),
    ],
)
def test_get_client_ip(headers, client, expected):
    assert get_client_ip(_request(headers, client)) == expected
