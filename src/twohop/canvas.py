"""Canvas board parsing.

A canvas is a JSON document whose "nodes" list may reference vault files.
Parsing never raises: anything malformed becomes an InvalidCanvas, which
behaves like a canvas without nodes.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from .models import CanvasNode

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidCanvas:
    nodes: tuple[CanvasNode, ...]

    def file_nodes(self) -> list[str]:
        """Vault paths of file nodes, in node order."""
        return [node.file for node in self.nodes if node.type == "file" and node.file]


@dataclass(frozen=True)
class InvalidCanvas:
    reason: str
    nodes: tuple[CanvasNode, ...] = ()

    def file_nodes(self) -> list[str]:
        return []


CanvasParseResult = ValidCanvas | InvalidCanvas


def parse_canvas(content: str, path: str = "<canvas>") -> CanvasParseResult:
    """Parse canvas JSON into its node list.

    Args:
        content: Raw canvas file content.
        path: Used in log messages only.

    Returns:
        ValidCanvas with the parsed nodes, or InvalidCanvas when the JSON is
        broken or "nodes" is not a list.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        log.warning("Invalid JSON in canvas %s: %s", path, e)
        return InvalidCanvas(f"invalid JSON: {e}")

    if not isinstance(data, dict):
        log.warning("Invalid structure in canvas %s: top level is not an object", path)
        return InvalidCanvas("top level is not an object")

    raw_nodes = data.get("nodes")
    if raw_nodes is None:
        return ValidCanvas(())
    if not isinstance(raw_nodes, list):
        log.warning("Invalid structure in canvas %s: nodes is not an array", path)
        return InvalidCanvas("nodes is not an array")

    nodes: list[CanvasNode] = []
    for raw in raw_nodes:
        if not isinstance(raw, dict):
            continue
        try:
            nodes.append(CanvasNode.model_validate(raw))
        except ValidationError as e:
            log.debug("Skipping malformed node in canvas %s: %s", path, e)

    return ValidCanvas(tuple(nodes))
