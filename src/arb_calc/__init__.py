from .client import EngineClient, decide, engine_client
from .codec import decode_request, decode_verdict, encode_request, encode_verdict, parse_i128
from .config import ClientConfig, config_from_env, load_config
from .errors import (
    CalcError,
    DecodeError,
    EncodeError,
    EngineError,
    IntegerOverflowError,
    TransportReadError,
    TransportWriteError,
)
from .evaluator import evaluate
from .filter import FilterProcess
from .models import ScenarioRequest, Verdict

__all__ = [
    "CalcError",
    "ClientConfig",
    "DecodeError",
    "EncodeError",
    "EngineClient",
    "EngineError",
    "FilterProcess",
    "IntegerOverflowError",
    "ScenarioRequest",
    "TransportReadError",
    "TransportWriteError",
    "Verdict",
    "config_from_env",
    "decide",
    "decode_request",
    "decode_verdict",
    "encode_request",
    "encode_verdict",
    "engine_client",
    "evaluate",
    "load_config",
    "parse_i128",
]
