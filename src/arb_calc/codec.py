"""Line codec for scenario requests and verdicts.

Every integer travels as a JSON string so that values wider than a double
survive the trip. Decoding goes straight from text to ``int``.
"""

import json
import re
from typing import Any, Dict, List, Tuple

from .errors import DecodeError, EncodeError
from .models import I128_MAX, I128_MIN, ScenarioRequest, Verdict

FEE_KEYS: Tuple[str, ...] = ("feeEstimateInInputUnits", "feeEstimateLamports")

# wire name -> ScenarioRequest attribute, fee handled separately
REQUEST_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("amountIn", "amount_in"),
    ("quote1Out", "quote1_out"),
    ("quote1MinOut", "quote1_min_out"),
    ("quote2Out", "quote2_out"),
    ("quote2MinOut", "quote2_min_out"),
    ("minProfit", "min_profit"),
)

VERDICT_KEYS: Tuple[str, ...] = ("profitable", "profit", "conservativeProfit")

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
# 2**127 has 39 digits
_MAX_SIGNIFICANT_DIGITS = 39


def _reject_duplicates(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    obj: Dict[str, Any] = {}
    for key, value in pairs:
        if key in obj:
            raise DecodeError(f"duplicate field `{key}`", field=key)
        obj[key] = value
    return obj


def _load_object(line: str) -> Dict[str, Any]:
    try:
        obj = json.loads(line, object_pairs_hook=_reject_duplicates)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"malformed record: {exc}") from None
    except (ValueError, RecursionError) as exc:
        # oversized number literals and deep nesting fail outside the JSON grammar
        raise DecodeError(f"malformed record: {type(exc).__name__}: {exc}") from None
    if not isinstance(obj, dict):
        raise DecodeError(f"expected a JSON object, got {type(obj).__name__}")
    return obj


def parse_i128(text: Any, field: str) -> int:
    if not isinstance(text, str):
        raise DecodeError(f"invalid int for {field}: expected a string, got {type(text).__name__}", field=field)
    if not _INTEGER_RE.fullmatch(text):
        raise DecodeError(f"invalid int for {field}: {text!r}", field=field)

    digits = text.lstrip("+-").lstrip("0")
    if len(digits) > _MAX_SIGNIFICANT_DIGITS:
        raise DecodeError(f"invalid int for {field}: {text!r} out of 128-bit range", field=field)

    value = int(digits or "0")
    if text.startswith("-"):
        value = -value
    if value < I128_MIN or value > I128_MAX:
        raise DecodeError(f"invalid int for {field}: {text!r} out of 128-bit range", field=field)
    return value


def _resolve_fee_key(obj: Dict[str, Any]) -> str:
    present = [key for key in FEE_KEYS if key in obj]
    if not present:
        raise DecodeError(f"missing field `{FEE_KEYS[0]}`", field=FEE_KEYS[0])
    if len(present) > 1:
        raise DecodeError(f"duplicate field `{FEE_KEYS[0]}`", field=present[1])
    return present[0]


def decode_request(line: str) -> ScenarioRequest:
    obj = _load_object(line)

    values: Dict[str, int] = {}
    for wire_name, attr in REQUEST_FIELDS:
        if wire_name not in obj:
            raise DecodeError(f"missing field `{wire_name}`", field=wire_name)
        values[attr] = parse_i128(obj[wire_name], wire_name)

    fee_key = _resolve_fee_key(obj)
    values["fee_estimate"] = parse_i128(obj[fee_key], fee_key)
    return ScenarioRequest(**values)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def encode_verdict(verdict: Verdict) -> str:
    if not isinstance(verdict.profitable, bool):
        raise EncodeError(f"profitable must be a bool, got {type(verdict.profitable).__name__}")
    for name in ("profit", "conservative_profit"):
        if not _is_integer(getattr(verdict, name)):
            raise EncodeError(f"{name} must be an int, got {type(getattr(verdict, name)).__name__}")
    try:
        payload = {
            "profitable": verdict.profitable,
            "profit": str(verdict.profit),
            "conservativeProfit": str(verdict.conservative_profit),
        }
        return json.dumps(payload, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise EncodeError(f"cannot serialize verdict: {exc}") from exc


def encode_request(request: ScenarioRequest, fee_key: str = FEE_KEYS[0]) -> str:
    if fee_key not in FEE_KEYS:
        raise ValueError(f"unknown fee key {fee_key!r}")
    payload: Dict[str, str] = {wire_name: str(getattr(request, attr)) for wire_name, attr in REQUEST_FIELDS}
    payload[fee_key] = str(request.fee_estimate)
    return json.dumps(payload, separators=(",", ":"))


def decode_verdict(line: str) -> Verdict:
    obj = _load_object(line)
    extra = sorted(set(obj) - set(VERDICT_KEYS))
    if extra:
        raise DecodeError(f"unexpected fields in verdict: {', '.join(extra)}", field=extra[0])
    for key in VERDICT_KEYS:
        if key not in obj:
            raise DecodeError(f"missing field `{key}`", field=key)

    profitable = obj["profitable"]
    if not isinstance(profitable, bool):
        raise DecodeError("profitable must be a boolean", field="profitable")
    return Verdict(
        profitable=profitable,
        profit=parse_i128(obj["profit"], "profit"),
        conservative_profit=parse_i128(obj["conservativeProfit"], "conservativeProfit"),
    )
