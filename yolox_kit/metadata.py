from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union

from .errors import ConfigurationError


PathLike = Union[str, Path]


def parse_labels(text: str) -> List[str]:
    """
    Parse a newline-separated label list. Entries are trimmed; blank lines are
    skipped. Line order is the class index.
    """

    labels = [line.strip() for line in text.split("\n")]
    return [label for label in labels if label]


def load_labels(path: PathLike) -> List[str]:
    """
    Load class names from either a plain text asset (one label per line) or the
    lightweight `metadata.yaml` format:

        names:
          0: person
          1: bicycle
          ...

    The yaml form must number classes contiguously from 0.
    """

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Label file not found: {p}")
    text = p.read_text(encoding="utf-8")

    if p.suffix.lower() in {".yaml", ".yml"}:
        names = _parse_names_mapping(text)
        if not names:
            raise ConfigurationError(f"No 'names:' entries found in {p}")
        if sorted(names) != list(range(len(names))):
            raise ConfigurationError(f"Class ids in {p} must be contiguous from 0 (got {sorted(names)})")
        return [names[i] for i in range(len(names))]

    labels = parse_labels(text)
    if not labels:
        raise ConfigurationError(f"Label file is empty: {p}")
    return labels


def load_class_names(path: PathLike) -> Dict[int, str]:
    return dict(enumerate(load_labels(path)))


def _parse_names_mapping(text: str) -> Dict[int, str]:
    names: Dict[int, str] = {}
    in_names = False

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line == "names:":
            in_names = True
            continue
        if not in_names:
            continue
        # A new top-level key ends the block.
        if not raw[:1].isspace() and not line[:1].isdigit():
            break

        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        right = right.strip().strip("'").strip('"')
        if not left.isdigit():
            continue
        names[int(left)] = right

    return names
