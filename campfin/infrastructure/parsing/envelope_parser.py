"""Parser for the API's response envelope.

Locates the status indicator, the optional top-level message, the field-level
errors and the payload of a response body. The API reports logical failures
inside HTTP 200 responses, so these fields decide the outcome of a call once
the transport status has been accepted.
"""

import json
import logging
from typing import Any, Iterable, List, Optional

from campfin.domain.models.envelope import ResponseEnvelope, ResponseStatus
from campfin.domain.models.errors import ParseError

logger = logging.getLogger(__name__)

STATUS_FIELD = "status"
MESSAGE_FIELD = "message"
ERRORS_FIELD = "errors"

_STATUS_ALIASES = {
    "OK": ResponseStatus.OK,
    "ERROR": ResponseStatus.ERROR,
    "INTERNAL SERVER ERROR": ResponseStatus.INTERNAL_SERVER_ERROR,
    "INTERNAL_SERVER_ERROR": ResponseStatus.INTERNAL_SERVER_ERROR,
    "INTERNALSERVERERROR": ResponseStatus.INTERNAL_SERVER_ERROR,
    "500": ResponseStatus.INTERNAL_SERVER_ERROR,
}

# Keys that carry the human-readable text of one entry in an errors list
_ERROR_TEXT_KEYS = ("error", "message", "detail")


class EnvelopeParser:
    """Turns raw JSON text into a ResponseEnvelope."""

    def parse(self, json_text: str) -> ResponseEnvelope:
        """Parses a response body.

        Args:
            json_text: The body of an HTTP 200 response.

        Returns:
            The envelope with status, message, errors and the raw document.

        Raises:
            ParseError: If the text is not JSON or its root is not an object.
        """
        try:
            document = json.loads(json_text)
        except (TypeError, ValueError) as e:
            logger.error(f"Response body is not valid JSON: {e}")
            raise ParseError(f"Invalid JSON in response body: {e}") from e

        if not isinstance(document, dict):
            logger.error(f"Response body root is {type(document).__name__}, expected an object")
            raise ParseError(f"Expected a JSON object, got {type(document).__name__}")

        raw_status = document.get(STATUS_FIELD)
        return ResponseEnvelope(
            raw=document,
            status=map_status(raw_status),
            raw_status=None if raw_status is None else str(raw_status),
            message=_get_message(document),
            errors=tuple(flatten_errors(document.get(ERRORS_FIELD))),
        )


def parse_envelope(json_text: str) -> ResponseEnvelope:
    """Module-level shortcut for EnvelopeParser().parse()."""
    return EnvelopeParser().parse(json_text)


def map_status(value: Any) -> ResponseStatus:
    """Maps the envelope's status value; unrecognized values map to UNKNOWN."""
    if value is None:
        return ResponseStatus.UNKNOWN
    return _STATUS_ALIASES.get(str(value).strip().upper(), ResponseStatus.UNKNOWN)


def flatten_errors(errors: Any) -> List[str]:
    """Flattens the errors field into human-readable strings.

    Accepts a single string, a list of strings or objects, or a mapping of
    field name to message(s).
    """
    if errors is None:
        return []
    if isinstance(errors, str):
        return [errors] if errors.strip() else []
    if isinstance(errors, dict):
        flattened = []
        for field_name, messages in errors.items():
            for text in flatten_errors(messages):
                flattened.append(f"{field_name}: {text}")
        return flattened
    if isinstance(errors, (list, tuple)):
        return [text for item in errors for text in _entry_texts(item)]
    return [str(errors)]


def _entry_texts(item: Any) -> Iterable[str]:
    if isinstance(item, dict):
        for key in _ERROR_TEXT_KEYS:
            value = item.get(key)
            if isinstance(value, str) and value.strip():
                return [value]
        return [json.dumps(item, sort_keys=True)]
    return flatten_errors(item)


def _get_message(document: dict) -> Optional[str]:
    message = document.get(MESSAGE_FIELD)
    if message is None:
        return None
    text = message if isinstance(message, str) else json.dumps(message)
    return text if text.strip() else None
