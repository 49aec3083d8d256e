"""Reading and writing Definitions as JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Union

from .definition.models import Definition
from .exceptions import DefinitionLoadError

logger = logging.getLogger(__name__)

DEFINITION_SUFFIX = ".json"


def dump_definition(definition: Definition, path: Union[str, Path]) -> Path:
    """Write ``definition`` to ``path`` and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(definition.to_dict(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
    )
    logger.debug("Wrote definition %r to %s", definition.title, path)
    return path


def load_definition(path: Union[str, Path]) -> Definition:
    """Read one definition file.

    Raises:
        DefinitionLoadError: If the file is unreadable or not a definition.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DefinitionLoadError(path, str(e))

    if not isinstance(data, dict):
        raise DefinitionLoadError(path, "expected a JSON object")
    try:
        return Definition.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise DefinitionLoadError(path, f"malformed definition: {e}")


def find_definition_files(directory: Union[str, Path]) -> list[Path]:
    """All definition files under ``directory``, recursively, sorted by path."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.rglob(f"*{DEFINITION_SUFFIX}") if p.is_file())
