from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .types_ import Dimensions

CONFIG_FILENAME = "cbz2epub.yaml"

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 800

_KNOWN_KEYS = ("width", "height", "resolution", "nb_worker", "loglevel")


@dataclass
class Config:
    """Runtime configuration for a CLI invocation.

    Built from defaults, then an optional YAML file, then CLI arguments.
    """

    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    nb_worker: int = 1
    dry_run: bool = False
    force_regen: bool = False
    verbose: bool = False
    loglevel: Optional[str] = None

    @property
    def dimensions(self) -> Dimensions:
        return Dimensions(self.width, self.height)

    def apply_file_values(self, values: Dict[str, Any]) -> "Config":
        """Apply values loaded by `load_config_file`.

        `resolution` sets both sides; explicit `width`/`height` win over it.
        """
        if "resolution" in values:
            self.width = self.height = int(values["resolution"])
        if "width" in values:
            self.width = int(values["width"])
        if "height" in values:
            self.height = int(values["height"])
        if "nb_worker" in values:
            self.nb_worker = int(values["nb_worker"])
        if values.get("loglevel"):
            self.loglevel = str(values["loglevel"])
        return self


def load_config_file(path: str | Path) -> Dict[str, Any]:
    """Load an optional YAML config file.

    Supported keys (all optional): `width`, `height`, `resolution`,
    `nb_worker`, `loglevel`. Unknown keys are ignored.

    Returns an empty dict when the file does not exist.

    Raises:
        ValueError: if the file cannot be parsed, its top level is not a
            mapping, or a numeric key holds a non-integer.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        return {}
    try:
        with cfg_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid config ({cfg_path}): {e}")
    except OSError as e:
        raise ValueError(f"Invalid config ({cfg_path}): {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config ({cfg_path}): top-level YAML must be a mapping")

    values = {k: v for k, v in data.items() if k in _KNOWN_KEYS}
    for key in ("width", "height", "resolution", "nb_worker"):
        if key in values and (isinstance(values[key], bool) or not isinstance(values[key], int)):
            raise ValueError(f"Invalid config ({cfg_path}): {key} must be an integer")
    return values


def find_config(directory: str | Path) -> Optional[Path]:
    """Return `directory/cbz2epub.yaml` if it exists."""
    candidate = Path(directory) / CONFIG_FILENAME
    return candidate if candidate.is_file() else None
