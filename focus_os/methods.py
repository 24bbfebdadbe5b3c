"""
Study method catalog.

Reads the YAML catalog shipped in focus_os/data (or the user's override in
the config dir) into immutable StudyMethod entries.

Usage:
    from focus_os.methods import load_methods

    methods = load_methods()
    methods["pomodoro"].duration_seconds  # 1500
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from focus_os import paths

logger = logging.getLogger(__name__)

CATALOG_PATH = paths.package_root() / "data" / "study_methods.yaml"
OVERRIDE_NAME = "study_methods.yaml"

DEFAULT_METHOD = "pomodoro"


@dataclass(frozen=True)
class StudyMethod:
    key: str
    name: str
    duration_seconds: int
    description: str = ""

    def __post_init__(self):
        if self.duration_seconds <= 0:
            raise ValueError(f"Study method {self.key!r} needs a positive duration")

    @property
    def duration_minutes(self) -> int:
        return self.duration_seconds // 60


def load_methods(path: str | Path | None = None) -> dict[str, StudyMethod]:
    """
    Load the study method catalog.

    Resolution order:
    1. explicit path
    2. <config_dir>/study_methods.yaml
    3. bundled focus_os/data/study_methods.yaml

    Returns:
        {key: StudyMethod} in file order.

    Raises:
        FileNotFoundError if an explicit path does not exist.
        ValueError if the file has no usable methods.
    """
    if path:
        catalog_path = Path(path)
        if not catalog_path.exists():
            raise FileNotFoundError(f"Study method catalog not found: {catalog_path}")
    else:
        override = paths.config_dir() / OVERRIDE_NAME
        catalog_path = override if override.exists() else CATALOG_PATH

    with open(catalog_path) as f:
        data = yaml.safe_load(f)

    if not data or "methods" not in data:
        raise ValueError(f"{catalog_path.name} must have a 'methods' key")

    methods = parse_methods(data["methods"])
    if not methods:
        raise ValueError(f"No valid study methods in {catalog_path}")

    logger.debug("Loaded %d study methods from %s", len(methods), catalog_path)
    return methods


def parse_methods(raw: dict) -> dict[str, StudyMethod]:
    """Build StudyMethod entries, skipping invalid ones."""
    methods = {}
    for key, entry in (raw or {}).items():
        if not isinstance(entry, dict):
            logger.warning(f"Skipping invalid study method entry: {key}")
            continue

        if "duration_seconds" in entry:
            seconds = entry["duration_seconds"]
        else:
            minutes = entry.get("duration_minutes")
            seconds = minutes * 60 if isinstance(minutes, int | float) else None

        if not isinstance(seconds, int | float) or int(seconds) <= 0:
            logger.warning(f"Invalid duration for study method {key}: {seconds}")
            continue

        methods[key] = StudyMethod(
            key=key,
            name=entry.get("name", key.title()),
            duration_seconds=int(seconds),
            description=entry.get("description", ""),
        )
    return methods


def by_duration(methods: dict[str, StudyMethod]) -> list[StudyMethod]:
    """Methods ordered shortest first."""
    return sorted(methods.values(), key=lambda m: (m.duration_seconds, m.key))


def format_time(seconds: int) -> str:
    """Format a countdown as MM:SS (minutes may exceed 59)."""
    seconds = max(0, int(seconds))
    mins, secs = divmod(seconds, 60)
    return f"{mins:02d}:{secs:02d}"
