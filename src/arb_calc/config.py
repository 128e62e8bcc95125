import os
import shlex
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

import yaml

USE_ENGINE_ENV = "USE_RUST_CALC"
ENGINE_PATH_ENV = "RUST_CALC_PATH"
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClientConfig:
    use_engine: bool = False
    engine_command: Tuple[str, ...] = ("arb-calc",)
    timeout: float = 5.0


def _command(value: Union[str, Sequence[str]]) -> Tuple[str, ...]:
    if isinstance(value, str):
        parts = tuple(shlex.split(value))
    else:
        parts = tuple(str(part) for part in value)
    if not parts:
        raise ValueError("engine_command must not be empty")
    return parts


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def config_from_mapping(data: Optional[Mapping[str, Any]]) -> ClientConfig:
    data = data or {}
    config = ClientConfig()
    if "use_engine" in data:
        config = replace(config, use_engine=_flag(data["use_engine"]))
    if "engine_command" in data:
        config = replace(config, engine_command=_command(data["engine_command"]))
    if "timeout" in data:
        timeout = float(data["timeout"])
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        config = replace(config, timeout=timeout)
    return config


def load_config(config_path: Path) -> ClientConfig:
    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is not None and not isinstance(data, dict):
        raise ValueError(f"{config_path}: expected a mapping at the top level")
    return config_from_mapping(data)


def config_from_env(base: Optional[ClientConfig] = None, environ: Optional[Mapping[str, str]] = None) -> ClientConfig:
    env = os.environ if environ is None else environ
    config = base or ClientConfig()
    if USE_ENGINE_ENV in env:
        config = replace(config, use_engine=_flag(env[USE_ENGINE_ENV]))
    if env.get(ENGINE_PATH_ENV):
        config = replace(config, engine_command=(env[ENGINE_PATH_ENV],))
    return config
