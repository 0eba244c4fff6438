# Semantic Similarity Engine - Find near-duplicate functions and types
# Copyright (C) 2025  Jonathan Louis
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Tuning and configuration file support.

Weights and normalization caps live in immutable dataclasses that are
handed to the scorers. Overrides can come from .semsimrc or .semsim.toml
in the current directory or any parent.
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional, Dict, Any
import os

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore


CONFIG_NAMES = [".semsimrc", ".semsim.toml"]
CONFIG_SECTION = "semsim"


@dataclass(frozen=True)
class FunctionWeights:
    """Relative weight of each function sub-score."""

    invoked_signatures: float = 0.25
    operation_histogram: float = 0.20
    accessed_types: float = 0.15
    parameter_types: float = 0.10
    cyclomatic_complexity: float = 0.075
    return_type: float = 0.05
    basic_blocks: float = 0.05
    conditional_branches: float = 0.05
    loops: float = 0.05
    parameter_count: float = 0.025


@dataclass(frozen=True)
class FunctionCaps:
    """Differences at or above a cap score zero."""

    basic_blocks: int = 60
    conditional_branches: int = 25
    loops: int = 8
    cyclomatic_complexity: int = 30


@dataclass(frozen=True)
class TypeWeights:
    """Relative weight of each type sub-score."""

    method_matching: float = 0.20
    interfaces: float = 0.15
    external_types: float = 0.15
    base_type: float = 0.07
    average_method_complexity: float = 0.05
    public_methods: float = 0.03
    properties: float = 0.03
    fields: float = 0.03
    used_namespaces: float = 0.03
    lines_of_code: float = 0.02
    protected_methods: float = 0.02
    private_methods: float = 0.02
    static_methods: float = 0.02
    abstract_methods: float = 0.02
    virtual_methods: float = 0.02
    read_only_properties: float = 0.01
    static_properties: float = 0.01
    static_fields: float = 0.01
    readonly_fields: float = 0.01
    const_fields: float = 0.01
    events: float = 0.01
    nested_classes: float = 0.01
    nested_structs: float = 0.01
    nested_enums: float = 0.01
    nested_interfaces: float = 0.01


@dataclass(frozen=True)
class TypeCaps:
    methods: int = 50
    properties: int = 30
    fields: int = 50
    events: int = 20
    nested_types: int = 10
    average_method_complexity: float = 15.0
    lines_of_code: int = 2000


@dataclass(frozen=True)
class SimilaritySettings:
    """Everything that tunes one similarity run."""

    function_weights: FunctionWeights = field(default_factory=FunctionWeights)
    function_caps: FunctionCaps = field(default_factory=FunctionCaps)
    type_weights: TypeWeights = field(default_factory=TypeWeights)
    type_caps: TypeCaps = field(default_factory=TypeCaps)
    function_min_lines: int = 10
    type_min_lines: int = 20
    default_threshold: float = 0.7
    max_workers: Optional[int] = None    # None = half the cores
    precompute_scores: bool = False

    @property
    def worker_count(self) -> int:
        if self.max_workers is not None:
            return max(1, self.max_workers)
        return max(1, (os.cpu_count() or 1) // 2)


DEFAULT_SETTINGS = SimilaritySettings()

_SECTIONS = {
    "function_weights": FunctionWeights,
    "function_caps": FunctionCaps,
    "type_weights": TypeWeights,
    "type_caps": TypeCaps,
}


def find_config_file(start_path: Path) -> Optional[Path]:
    """
    Search for .semsimrc or .semsim.toml in start_path and parent directories.

    Args:
        start_path: Directory to start searching from

    Returns:
        Path to config file if found, None otherwise
    """
    current = start_path.resolve()

    while True:
        for name in CONFIG_NAMES:
            config_path = current / name
            if config_path.is_file():
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path) -> Dict[str, Any]:
    """
    Load the [semsim] table from the nearest config file.

    Returns empty dict if no config file is found or it cannot be read.

    Example config file (.semsimrc or .semsim.toml):
        [semsim]
        threshold = 0.8
        function_min_lines = 12
        max_workers = 4

        [semsim.function_weights]
        invoked_signatures = 0.3

        [semsim.type_caps]
        lines_of_code = 3000
    """
    config_path = find_config_file(path)

    if config_path is None:
        return {}

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        return data.get(CONFIG_SECTION, {})

    except (OSError, tomllib.TOMLDecodeError):
        # File unreadable or invalid TOML - return empty config
        return {}


def settings_from_config(
    config: Dict[str, Any],
    base: SimilaritySettings = DEFAULT_SETTINGS,
) -> SimilaritySettings:
    """
    Build SimilaritySettings from a [semsim] table.

    Keys the CLI owns ("threshold", "output", ...) are ignored here.

    Raises:
        ValueError: On an unknown key inside a weights/caps sub-table
    """
    changes: Dict[str, Any] = {}

    for section, cls in _SECTIONS.items():
        overrides = config.get(section)
        if not overrides:
            continue
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown keys in [{CONFIG_SECTION}.{section}]: {', '.join(sorted(unknown))}")
        changes[section] = replace(getattr(base, section), **overrides)

    for key in ("function_min_lines", "type_min_lines", "max_workers", "precompute_scores"):
        if key in config:
            changes[key] = config[key]

    if "threshold" in config:
        changes["default_threshold"] = float(config["threshold"])

    return replace(base, **changes)
