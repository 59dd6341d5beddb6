"""Text encoding for DataBag values.

Objects and arrays are stored as compact JSON. Every other value is stored in
its plain string form ("true", "100", "null", or the string itself), and
decoding tries JSON first, so primitives come back typed:

  encode_value(True)        → "true"   → decode_value → True
  encode_value("advanced")  → "advanced" → decode_value → "advanced"
  encode_value("42")        → "42"     → decode_value → 42

The last case is a known quirk kept for compatibility with existing files.

Decoding only accepts strict JSON: "NaN", "Infinity", "-Infinity" and number
literals that overflow a float (such as "1e400") come back as the raw text,
so every decoded value can be rendered as a JSON response.
"""

import json
import math
from typing import Any

JsonValue = None | bool | int | float | str | list[Any] | dict[str, Any]

# Above this, integral floats print in exponent form ("1e+21")
_PLAIN_INTEGER_LIMIT = 1e21


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"{text} is out of range")
    return value


def encode_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer() and abs(value) < _PLAIN_INTEGER_LIMIT:
            return str(int(value))
        return json.dumps(value)
    return str(value)


def decode_value(text: str | None) -> Any:
    if text is None:
        return None
    try:
        return json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)
    except ValueError:
        return text
