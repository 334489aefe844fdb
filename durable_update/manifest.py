"""Node.js package.json reading and writing."""

import json
import logging
import re
from pathlib import Path

from .errors import ManifestError, ManifestWriteFailure

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST = "package.json"
DEFAULT_INDENT = 2


def parse_package_json(content: str) -> dict:
    """Parse package.json content into a manifest object.

    Args:
        content: The package.json file content

    Returns:
        The decoded top-level object

    Raises:
        ManifestError: If the content is not a JSON object
    """
    try:
        manifest = json.loads(content)
    except json.JSONDecodeError as e:
        raise ManifestError(f"manifest is not valid JSON: {e}") from e

    if not isinstance(manifest, dict):
        raise ManifestError("manifest must be a JSON object")
    return manifest


def detect_indent(content: str) -> int | str:
    """Detect the indentation used by an existing JSON document."""
    match = re.search(r"^([ \t]+)\S", content, re.MULTILINE)
    if not match:
        return DEFAULT_INDENT
    indent = match.group(1)
    if "\t" in indent:
        return "\t"
    return len(indent)


def dump_manifest(manifest: dict, indent: int | str = DEFAULT_INDENT) -> str:
    """Serialize a manifest the way npm writes it."""
    return json.dumps(manifest, indent=indent, ensure_ascii=False) + "\n"


def load_manifest(path: Path) -> tuple[str, dict]:
    """Read a manifest file.

    Returns:
        The raw file text and the parsed manifest
    """
    logger.info("manifestPath: %s", path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"could not read manifest {path}: {e}") from e
    return content, parse_package_json(content)


def write_manifest(path: Path, content: str) -> None:
    """Persist manifest text, reporting failures as ManifestWriteFailure."""
    logger.debug("writing manifest %s", path)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ManifestWriteFailure(path, str(e)) from e
