"""Geometry configuration loader.

Tunable settings (BVT split heuristic, query tolerances, default scalar
precision) are read from YAML configuration files into frozen dataclasses.
This module provides a typed, validated interface to the configuration;
``default_config()`` returns the built-in values without reading a file.

Configuration layout
--------------------
.. code-block:: yaml

    bvt:
      split_strategy: longest_extent   # or max_variance
    query:
      alignment_tolerance: 1.0e-9
    volumetric:
      precision: float64               # or float32
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import yaml

logger = logging.getLogger(__name__)

SPLIT_STRATEGIES: tuple[str, ...] = ("longest_extent", "max_variance")
PRECISIONS: dict[str, type] = {"float32": np.float32, "float64": np.float64}

# ---------------------------------------------------------------------------
# Configuration Data Classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BVTConfig:
    """Bounding-volume tree construction settings.

    Attributes
    ----------
    split_strategy : str
        Axis selection for the median split: ``'longest_extent'`` picks the
        axis with the widest spread of leaf centers, ``'max_variance'`` the
        axis with the largest center variance.
    """

    split_strategy: str = "longest_extent"


@dataclass(frozen=True)
class QueryConfig:
    """Geometric query settings.

    Attributes
    ----------
    alignment_tolerance : float
        Maximum deviation of a rotation matrix entry from 0 or ±1 for the
        rotation to count as a signed axis permutation.
    """

    alignment_tolerance: float = 1e-9


@dataclass(frozen=True)
class VolumetricConfig:
    """Volumetric settings.

    Attributes
    ----------
    precision : str
        Default scalar type of primitives built without an explicit dtype
        (``'float32'`` or ``'float64'``).
    """

    precision: str = "float64"

    @property
    def dtype(self) -> type:
        """NumPy scalar type matching ``precision``."""
        return PRECISIONS[self.precision]


@dataclass(frozen=True)
class GeometryConfig:
    """Top-level configuration.

    Attributes
    ----------
    bvt : BVTConfig
        Bounding-volume tree settings.
    query : QueryConfig
        Geometric query settings.
    volumetric : VolumetricConfig
        Volumetric settings.
    """

    bvt: BVTConfig = field(default_factory=BVTConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    volumetric: VolumetricConfig = field(default_factory=VolumetricConfig)


# ---------------------------------------------------------------------------
# Configuration Loader
# ---------------------------------------------------------------------------


def default_config() -> GeometryConfig:
    """Return the built-in configuration (same values as the default YAML)."""
    return GeometryConfig()


def load_config(config_path: str | Path) -> GeometryConfig:
    """Load and validate a geometry configuration from a YAML file.

    Sections or keys missing from the file keep their built-in defaults.

    Parameters
    ----------
    config_path : str or Path
        Path to the YAML configuration file.

    Returns
    -------
    GeometryConfig
        Fully populated, typed configuration object.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If the file is malformed or a value is invalid.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw: dict[str, Any] | None = yaml.safe_load(f)

    logger.info("Loading configuration from: %s", config_path)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration root must be a mapping, got {type(raw).__name__}")

    defaults = default_config()

    # --- Parse BVT settings ---
    bvt_raw = _section(raw, "bvt")
    bvt = BVTConfig(
        split_strategy=str(bvt_raw.get("split_strategy", defaults.bvt.split_strategy)),
    )

    # --- Parse query settings ---
    query_raw = _section(raw, "query")
    query = QueryConfig(
        alignment_tolerance=float(
            query_raw.get("alignment_tolerance", defaults.query.alignment_tolerance)
        ),
    )

    # --- Parse volumetric settings ---
    vol_raw = _section(raw, "volumetric")
    volumetric = VolumetricConfig(
        precision=str(vol_raw.get("precision", defaults.volumetric.precision)),
    )

    config = GeometryConfig(bvt=bvt, query=query, volumetric=volumetric)

    _validate_config(config)
    logger.info("Configuration loaded successfully.")

    return config


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return section


def _validate_config(config: GeometryConfig) -> None:
    """Validate configuration values.

    Parameters
    ----------
    config : GeometryConfig
        Configuration to validate.

    Raises
    ------
    ValueError
        If any value is invalid.
    """
    if config.bvt.split_strategy not in SPLIT_STRATEGIES:
        raise ValueError(
            f"BVT split strategy must be one of {SPLIT_STRATEGIES}, "
            f"got '{config.bvt.split_strategy}'"
        )
    if not (0.0 <= config.query.alignment_tolerance < 0.5):
        raise ValueError(
            f"Alignment tolerance must be in [0, 0.5), got {config.query.alignment_tolerance}"
        )
    if config.volumetric.precision not in PRECISIONS:
        raise ValueError(
            f"Precision must be one of {tuple(PRECISIONS)}, "
            f"got '{config.volumetric.precision}'"
        )

    logger.debug("Configuration validation passed.")


def hash_array(arr: np.ndarray) -> str:
    """Compute SHA-256 hash of a NumPy array for bit-identity checks.

    The dtype and shape take part in the hash, so arrays holding the same
    bytes under different interpretations do not collide.

    Parameters
    ----------
    arr : np.ndarray
        Array to hash.

    Returns
    -------
    str
        Hex digest of the SHA-256 hash.
    """
    arr = np.ascontiguousarray(arr)
    digest = hashlib.sha256()
    digest.update(str(arr.dtype).encode("ascii"))
    digest.update(str(arr.shape).encode("ascii"))
    digest.update(arr.tobytes())
    return digest.hexdigest()
