from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


CONFIG_FILE = Path("config.toml")
CONFIG_ENV_VAR = "AGIMGCONV_CONFIG"


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    parallelism: int = 1
    log_file: Path | None = None
    fail_on_error: bool = True


@dataclass(frozen=True, slots=True)
class DefaultsConfig:
    quality: int | None = None
    recursive: bool = False


@dataclass(frozen=True, slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _table(raw: Mapping[str, object], name: str) -> Mapping[str, object] | None:
    value = raw.get(name)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise TypeError(f"config: [{name}] must be a TOML table")
    return value


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    log_file = data.get("log_file")
    parallelism = int(data.get("parallelism", 1))
    if parallelism < 1:
        raise ValueError("config: runtime.parallelism must be >= 1")
    return RuntimeConfig(
        parallelism=parallelism,
        log_file=Path(str(log_file)) if log_file else None,
        fail_on_error=bool(data.get("fail_on_error", True)),
    )


def _build_defaults(data: Mapping[str, object] | None) -> DefaultsConfig:
    if not data:
        return DefaultsConfig()
    quality = data.get("quality")
    if quality is not None and not isinstance(quality, int):
        raise TypeError("config: defaults.quality must be an int")
    return DefaultsConfig(
        quality=quality,
        recursive=bool(data.get("recursive", False)),
    )


def default_config_path() -> Path:
    env_path = os.getenv(CONFIG_ENV_VAR)
    return Path(env_path) if env_path else CONFIG_FILE


def load_config(path: Path | None = None) -> AppConfig:
    raw = _read_toml(path or default_config_path())
    return AppConfig(
        runtime=_build_runtime(_table(raw, "runtime")),
        defaults=_build_defaults(_table(raw, "defaults")),
    )


__all__ = [
    "AppConfig",
    "CONFIG_ENV_VAR",
    "DefaultsConfig",
    "RuntimeConfig",
    "default_config_path",
    "load_config",
]
