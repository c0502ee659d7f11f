"""Parsers for the loosely structured text that models return.

Each parser returns ``None`` when the text does not have the expected
shape; callers decide whether that means "retry" or "no answer".
"""

from typing import Any, Dict, List, Optional
import json
import re

JSON_BLOCK_PATTERN = re.compile(r"```json\s*\n([\s\S]*?)\n?```")

_AFFIRMATIVE = {"YES", "Y", "TRUE", "T", "1", "ON", "ENABLE"}
_NEGATIVE = {"NO", "N", "FALSE", "F", "0", "OFF", "DISABLE"}
_SHOULD_RESPOND = ("RESPOND", "IGNORE", "STOP")


def clean_json_response(response: str) -> str:
    """Strip surrounding code fence markers from a model response"""
    response = response.strip()

    if response.startswith("```json"):
        response = response[7:]
    elif response.startswith("```"):
        response = response[3:]

    if response.endswith("```"):
        response = response[:-3]

    return response.strip()


def _json_candidate(text: str, opener: str, closer: str) -> Optional[str]:
    match = JSON_BLOCK_PATTERN.search(text)
    if match:
        return match.group(1).strip()

    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def _loads(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass
    # Models often answer with single-quoted pseudo-JSON
    try:
        return json.loads(candidate.replace("'", '"'))
    except json.JSONDecodeError:
        return None


def parse_json_array_from_text(text: str) -> Optional[List[Any]]:
    if not text:
        return None
    candidate = _json_candidate(clean_json_response(text), "[", "]")
    if candidate is None:
        return None
    parsed = _loads(candidate)
    return parsed if isinstance(parsed, list) else None


def parse_json_object_from_text(text: str) -> Optional[Dict[str, Any]]:
    if not text:
        return None
    candidate = _json_candidate(clean_json_response(text), "{", "}")
    if candidate is None:
        return None
    parsed = _loads(candidate)
    return parsed if isinstance(parsed, dict) else None


def parse_boolean_from_text(text: str) -> Optional[bool]:
    """YES/NO style answer, None when ambiguous"""
    if not text:
        return None
    normalized = text.strip().strip(".!").upper()
    if normalized in _AFFIRMATIVE:
        return True
    if normalized in _NEGATIVE:
        return False
    return None


def parse_should_respond(text: str) -> Optional[str]:
    """RESPOND, IGNORE or STOP; the first line wins, then any mention"""
    if not text:
        return None
    first_line = text.strip().split("\n")[0].strip().replace("[", "").replace("]", "").upper()
    if first_line in _SHOULD_RESPOND:
        return first_line
    upper = text.upper()
    for choice in _SHOULD_RESPOND:
        if choice in upper:
            return choice
    return None
