"""
Configuration & Path Management
===============================
This module serves as the central registry for file paths and tunable constants.

Why is this file needed?
------------------------
1. Abstraction: Canvas size, force constants, zoom limits and tooltip delays
   live in one place instead of being scattered through the widgets.
2. Overrides: A JSON file (``--config`` or ``GRAPHI_CONFIG``) may replace any
   of the defaults without touching code.
3. Deployment: It locates the bundled datasets through ``importlib.resources``
   so they are found both in a checkout and in an installed package.

Exports:
    DATA_PATH (str): Absolute path to the directory holding the dataset files.
    DATASETS (dict): Visible dataset names mapped to their file identifiers.
    GraphConfig: The complete configuration value.
"""
from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, field, fields, replace, asdict
from importlib.resources import files
from typing import Any, Optional

from graphi.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "GRAPHI_CONFIG"
DATA_DIR_ENV_VAR = "GRAPHI_DATA_DIR"


def get_data_path() -> str:
    """
    Get absolute path to the dataset directory.

    ``GRAPHI_DATA_DIR`` wins over the datasets shipped inside the package.
    """
    override = os.environ.get(DATA_DIR_ENV_VAR)
    if override:
        return os.path.abspath(override)
    return str(files("graphi.resources").joinpath("data"))


# Global Constants
DATA_PATH: str = get_data_path()

DATASETS: dict[str, str] = {
    "Graph 1": "graph1.json",
    "Graph 2": "graph2.json",
    "Graph 3": "graph3.json",
}
DEFAULT_DATASET: str = "graph1.json"

if not os.path.isdir(DATA_PATH):
    logger.warning(f"Data path not found at {DATA_PATH}")


@dataclass(frozen=True)
class CanvasSettings:
    width: float = 800.0
    height: float = 600.0

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2


@dataclass(frozen=True)
class NodeRadiusSettings:
    min: float = 8.0
    max: float = 25.0

    def __post_init__(self) -> None:
        if not 0 < self.min <= self.max:
            raise ConfigError(f"Node radius range must satisfy 0 < min <= max, got [{self.min}, {self.max}].")


@dataclass(frozen=True)
class ForceSettings:
    """Force constants. Negative charge strength means repulsion."""
    link_distance: float = 120.0
    link_iterations: int = 1
    charge_strength: float = -400.0
    charge_distance_min: float = 1.0
    charge_distance_max: float = math.inf
    theta: float = 0.9
    barnes_hut_threshold: int = 200
    center_strength: float = 1.0
    collision_padding: float = 2.0
    collision_strength: float = 0.7
    collision_iterations: int = 1


@dataclass(frozen=True)
class SimulationSettings:
    """
    Alpha ("temperature") schedule of a single simulation run.

    The default decay cools alpha from 1 to alpha_min in about 300 ticks.
    """
    alpha: float = 1.0
    alpha_min: float = 0.001
    alpha_decay: float = 1.0 - 0.001 ** (1.0 / 300.0)
    alpha_target: float = 0.0
    warm_alpha_target: float = 0.3
    velocity_decay: float = 0.4
    initial_radius: float = 10.0
    seed: Optional[int] = None
    frame_interval_ms: int = 16

    def __post_init__(self) -> None:
        for name in ("alpha", "alpha_min", "alpha_target", "warm_alpha_target", "velocity_decay"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"'{name}' must lie in [0, 1], got {value}.")
        if not 0.0 < self.alpha_decay <= 1.0:
            raise ConfigError(f"'alpha_decay' must lie in (0, 1], got {self.alpha_decay}.")


@dataclass(frozen=True)
class ZoomSettings:
    scale_extent: tuple[float, float] = (0.1, 4.0)
    step: float = 1.5
    zoom_duration_ms: int = 300
    reset_duration_ms: int = 500
    wheel_delta_factor: float = 0.002

    def __post_init__(self) -> None:
        low, high = self.scale_extent
        if not 0 < low <= high:
            raise ConfigError(f"Scale extent must satisfy 0 < min <= max, got {self.scale_extent}.")
        if self.step <= 1.0:
            raise ConfigError(f"Zoom step must be greater than 1, got {self.step}.")


@dataclass(frozen=True)
class TooltipSettings:
    show_delay_ms: int = 200
    hide_delay_ms: int = 500
    offset: tuple[float, float] = (10.0, -28.0)


@dataclass(frozen=True)
class LabelSettings:
    max_title_length: int = 30
    margin: float = 15.0


@dataclass(frozen=True)
class GraphConfig:
    """Everything the graph view needs; one instance per application."""
    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    node_radius: NodeRadiusSettings = field(default_factory=NodeRadiusSettings)
    forces: ForceSettings = field(default_factory=ForceSettings)
    simulation: SimulationSettings = field(default_factory=SimulationSettings)
    zoom: ZoomSettings = field(default_factory=ZoomSettings)
    tooltip: TooltipSettings = field(default_factory=TooltipSettings)
    labels: LabelSettings = field(default_factory=LabelSettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GraphConfig:
        """
        Build a configuration from nested overrides.

        Args:
            data: Mapping of section name (e.g. "forces") to a mapping of field overrides.

        Returns:
            A new GraphConfig with the overrides applied on top of the defaults.

        Raises:
            ConfigError: If a section or field is unknown, or a value is invalid.
        """
        config = cls()
        sections = {f.name for f in fields(cls)}
        for section_name, overrides in data.items():
            if section_name not in sections:
                raise ConfigError(f"Unknown configuration section '{section_name}'.")
            if not isinstance(overrides, dict):
                raise ConfigError(f"Section '{section_name}' must be an object.")
            section = getattr(config, section_name)
            known = {f.name for f in fields(section)}
            unknown = set(overrides) - known
            if unknown:
                raise ConfigError(f"Unknown keys in '{section_name}': {sorted(unknown)}.")
            # JSON has no tuples
            values = {k: tuple(v) if isinstance(v, list) else v for k, v in overrides.items()}
            try:
                section = replace(section, **values)
            except TypeError as e:
                raise ConfigError(f"Invalid value in '{section_name}': {e}") from e
            config = replace(config, **{section_name: section})
        return config

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_config(path: Optional[str] = None) -> GraphConfig:
    """
    Load the configuration, falling back to defaults.

    Args:
        path: JSON file with overrides. When None, ``GRAPHI_CONFIG`` is consulted.

    Returns:
        The resolved configuration.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return GraphConfig()

    logger.info(f"Loading configuration from: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read configuration '{path}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration '{path}' must contain a JSON object.")
    return GraphConfig.from_dict(data)
