"""
Analyzer configuration, read from the environment (and a local .env file).
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

DEFAULT_PLATFORM_PREFIXES = ("java", "javax")
DEFAULT_OUTPUT_DIR = "tmp/chains_out"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(value: str, name: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be true or false, got {value!r}")


def _parse_prefixes(value: str) -> Tuple[str, ...]:
    return tuple(p.strip() for p in value.split(",") if p.strip())


@dataclass(frozen=True)
class AnalyzerConfig:
    # packages whose methods count as exception sources by their throws clause alone
    platform_prefixes: Tuple[str, ...] = DEFAULT_PLATFORM_PREFIXES
    # answer for catch matching when either class is unknown
    unknown_class_compatible: bool = True
    output_dir: str = DEFAULT_OUTPUT_DIR

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "AnalyzerConfig":
        """Build a config from EXCEPTION_GRAPH_* variables"""
        load_dotenv(env_file)
        kwargs = {}
        prefixes = os.getenv("EXCEPTION_GRAPH_PLATFORM_PREFIXES")
        if prefixes is not None:
            kwargs["platform_prefixes"] = _parse_prefixes(prefixes)
        unknown = os.getenv("EXCEPTION_GRAPH_UNKNOWN_COMPATIBLE")
        if unknown is not None:
            kwargs["unknown_class_compatible"] = _parse_bool(
                unknown, "EXCEPTION_GRAPH_UNKNOWN_COMPATIBLE")
        output_dir = os.getenv("EXCEPTION_GRAPH_OUTPUT_DIR")
        if output_dir:
            kwargs["output_dir"] = output_dir
        return cls(**kwargs)

    def is_platform_package(self, package_name: Optional[str],
                            prefixes: Optional[Tuple[str, ...]] = None) -> bool:
        if not package_name:
            return False
        prefixes = self.platform_prefixes if prefixes is None else prefixes
        return any(package_name.startswith(p) for p in prefixes)
