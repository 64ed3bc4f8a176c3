"""
Text post-processing for Gemini replies.

Everything here is pure: text in, plain data out. No network, no FastAPI.

- parse_identified_drugs: line-by-line regex scan of the identification reply
- extract_json_object: first "{" to last "}" of the verification reply
- status_color: traffic-light colour for a verification ``overallStatus``
"""
import json
import re
from typing import Any

from .errors import ResponseParseError

# "<name> <count><unit>", e.g. "アセトアミノフェン 2錠"
DRUG_LINE_PATTERN = re.compile(r'(.+?)\s+([0-9]+)(錠|カプセル|ml|個)')

DIFFICULTY_MARKER = "識別が困難"
UNKNOWN = "不明"
NOT_IDENTIFIED_MESSAGE = "薬剤の識別ができませんでした。"

# Checked in order, first hit wins ("一部不一致" also contains "不一致")
STATUS_COLORS = (
    ("完全一致", "green"),
    ("一部不一致", "yellow"),
    ("不一致", "red"),
)
DEFAULT_STATUS_COLOR = "gray"


def unknown_drug(message: str) -> dict:
    """Sentinel entry used when a drug could not be identified."""
    return {"name": UNKNOWN, "quantity": UNKNOWN, "message": message}


def parse_identified_drugs(text: str) -> list[dict]:
    """Parse the identification reply into ``{name, quantity[, message]}`` dicts.

    A line matching the drug pattern wins over the difficulty marker on the
    same line. Never returns an empty list.
    """
    identified = []
    for line in text.split("\n"):
        match = DRUG_LINE_PATTERN.search(line)
        if match:
            identified.append({
                "name": match.group(1).rstrip(),
                "quantity": match.group(2) + match.group(3),
            })
        elif DIFFICULTY_MARKER in line:
            identified.append(unknown_drug(line))

    if not identified:
        identified.append(unknown_drug(NOT_IDENTIFIED_MESSAGE))

    return identified


def _reject_constant(name: str):
    # NaN / Infinity / -Infinity are not JSON
    raise ValueError(f"Non-standard JSON constant: {name}")


def extract_json_object(text: str) -> dict:
    """Parse the region from the first ``{`` to the last ``}`` as JSON.

    This is a greedy slice, not a balanced-brace scan: braces in prose
    before or after the object end up in the slice and break the parse.
    """
    start = text.find('{')
    end = text.rfind('}')
    if start == -1 or end < start:
        raise ResponseParseError("AIの応答に有効なJSONオブジェクトが見つかりません。", raw_text=text)

    try:
        data = json.loads(text[start:end + 1], parse_constant=_reject_constant)
    except ValueError as e:
        raise ResponseParseError(f"Invalid JSON in model response: {e}", raw_text=text) from e

    if not isinstance(data, dict):
        raise ResponseParseError("Model response JSON is not an object", raw_text=text)
    return data


def status_color(status: Any) -> str:
    """Map an ``overallStatus`` value to green / yellow / red / gray.

    Strings are checked by substring, lists by element membership.
    """
    if status is None:
        return DEFAULT_STATUS_COLOR
    if not isinstance(status, (str, list)):
        raise ResponseParseError(f"overallStatus has unsupported type {type(status).__name__}")

    for phrase, color in STATUS_COLORS:
        if phrase in status:
            return color
    return DEFAULT_STATUS_COLOR


def build_verification_result(text: str, identified_drugs: list) -> dict:
    """Flatten the parsed verification JSON with the derived fields.

    ``identified_drugs`` is the caller's list, echoed back untouched.
    """
    data = extract_json_object(text)
    try:
        color = status_color(data.get("overallStatus"))
    except ResponseParseError as e:
        e.raw_text = text
        raise

    return {
        **data,
        "overallStatusColor": color,
        "identifiedDrugs": identified_drugs,
        "rawResponse": text,
    }
