"""Loading sync pairs from JSON files."""

import json
import logging
from pathlib import Path
from typing import Any, Union

from ..exceptions import ConfigError, MisconfigurationError
from .pair import SyncPair

logger = logging.getLogger(__name__)


def load_sync_pairs_from_json(path: Union[str, Path]) -> list[SyncPair]:
    """Load sync pairs from a JSON file.

    The file holds either a list of pair objects or an object with a
    "pairs" list. Each pair object uses the keys understood by
    :meth:`SyncPair.from_dict`::

        [
            {"source": "/data", "destination": "/backup", "syncMode": "local"},
            {"source": "/data", "destination": "/srv/data",
             "syncMode": "push", "host": "nas", "username": "backup"}
        ]

    Args:
        path: Path of the JSON file

    Returns:
        List of SyncPair objects, in file order

    Raises:
        ConfigError: If the file cannot be read or a pair is invalid
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data: Any = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Sync pairs file not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read sync pairs file {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("pairs")
    if not isinstance(data, list):
        raise ConfigError(
            f"Sync pairs file {path} must contain a list of pairs "
            "or an object with a 'pairs' list"
        )

    pairs: list[SyncPair] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ConfigError(f"Sync pair #{index + 1} in {path} is not an object")
        try:
            pair = SyncPair.from_dict(item)
            pair.validate()
        except MisconfigurationError as e:
            raise ConfigError(f"Sync pair #{index + 1} in {path}: {e}") from e
        pairs.append(pair)

    logger.debug("Loaded %d sync pair(s) from %s", len(pairs), path)
    return pairs
