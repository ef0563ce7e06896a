import json

import pytest

from campfin.domain.models.envelope import ResponseStatus
from campfin.domain.models.errors import ApiError, ErrorKind, ParseError
from campfin.infrastructure.parsing.envelope_parser import (
    EnvelopeParser, flatten_errors, map_status, parse_envelope,
)


@pytest.fixture
def parser():
    return EnvelopeParser()


def test_parse_ok_envelope_exposes_results(parser):
    results = [{"candidate": {"id": "P60007168", "name": "Sanders, Bernie"}}]
    envelope = parser.parse(json.dumps({"status": "OK", "results": results}))

    assert envelope.status is ResponseStatus.OK
    assert envelope.many() == results
    assert envelope.errors == ()
    assert envelope.message is None


@pytest.mark.parametrize("value, expected", [
    ("OK", ResponseStatus.OK),
    ("ok", ResponseStatus.OK),
    ("ERROR", ResponseStatus.ERROR),
    ("Internal Server Error", ResponseStatus.INTERNAL_SERVER_ERROR),
    ("500", ResponseStatus.INTERNAL_SERVER_ERROR),
    ("PENDING", ResponseStatus.UNKNOWN),
    (None, ResponseStatus.UNKNOWN),
])
def test_map_status(value, expected):
    assert map_status(value) is expected


def test_top_level_message_is_captured(parser):
    envelope = parser.parse('{"message": "API rate limit exceeded"}')
    assert envelope.has_message
    assert envelope.message == "API rate limit exceeded"
    assert envelope.status is ResponseStatus.UNKNOWN


def test_blank_message_is_ignored(parser):
    envelope = parser.parse('{"status": "OK", "message": "  "}')
    assert not envelope.has_message


def test_errors_are_flattened(parser):
    envelope = parser.parse(json.dumps({"status": "ERROR", "errors": [{"error": "bad fec id"}]}))
    assert envelope.status is ResponseStatus.ERROR
    assert envelope.errors == ("bad fec id",)


@pytest.mark.parametrize("errors, expected", [
    (None, []),
    ("invalid cycle", ["invalid cycle"]),
    (["one", "two"], ["one", "two"]),
    ([{"message": "bad date"}, {"detail": "bad state"}], ["bad date", "bad state"]),
    ({"cycle": ["must be even"], "state": "unknown"}, ["cycle: must be even", "state: unknown"]),
    ([{"code": 7}], ['{"code": 7}']),
])
def test_flatten_errors_shapes(errors, expected):
    assert flatten_errors(errors) == expected


@pytest.mark.parametrize("body", ["not json", "", "[1, 2]", '"OK"'])
def test_invalid_bodies_raise_parse_error(parser, body):
    with pytest.raises(ParseError) as exc_info:
        parser.parse(body)
    assert isinstance(exc_info.value, ApiError)
    assert exc_info.value.kind is ErrorKind.TRANSPORT


def test_parse_envelope_shortcut():
    envelope = parse_envelope('{"status": "OK", "results": []}')
    assert envelope.status is ResponseStatus.OK
    assert envelope.raw_status == "OK"
