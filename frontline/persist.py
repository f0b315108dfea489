"""Writing constraint updates back to composer.json."""

import enum
import json
import logging
import os
import re
import shutil
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .exceptions import ManifestError, ManifestNotFoundError, PatchError
from .models import UpdateDecision

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"[ \t\n\r]*")
_STRING_RE = re.compile(r'"(?:[^"\\\x00-\x1f]|\\(?:["\\/bfnrt]|u[0-9a-fA-F]{4}))*"')
_LITERAL_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?|true|false|null")


class JsonFile:
    """A JSON file on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read_text(self) -> str:
        if not self.exists():
            raise ManifestNotFoundError(f"Could not find {self.path}")
        # newline="" keeps CRLF files intact through a patch
        with self.path.open(encoding="utf-8", newline="") as f:
            return f.read()

    def decode(self, contents: str) -> dict:
        try:
            data = json.loads(contents)
        except json.JSONDecodeError as e:
            raise ManifestError(f"{self.path} does not contain valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ManifestError(f"{self.path} does not contain a JSON object")
        return data

    def read(self) -> dict:
        return self.decode(self.read_text())

    @staticmethod
    def encode(data: dict) -> str:
        """Pretty-print with Composer's layout: 4 spaces, raw unicode and slashes."""
        return json.dumps(data, indent=4, ensure_ascii=False) + "\n"

    def write(self, data: dict) -> None:
        self.write_text(self.encode(data))

    def write_text(self, contents: str) -> None:
        """Atomically replace the file contents."""
        fd, tmppath = tempfile.mkstemp(
            prefix=self.path.name + ".", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(contents)
                f.flush()
                os.fsync(f.fileno())
            if self.path.exists():
                shutil.copymode(self.path, tmppath)
            os.replace(tmppath, self.path)
        except BaseException:
            try:
                os.remove(tmppath)
            except OSError:
                pass
            raise


@dataclass
class _Member:
    """Location of an object member's value in the source text."""

    key: str
    value_start: int
    value_end: int


class ManifestEditor:
    """Edits string values in JSON text without touching anything else."""

    def __init__(self, contents: str):
        self.contents = contents

    def _skip(self, pos: int) -> int:
        return _WHITESPACE_RE.match(self.contents, pos).end()

    def _scan_value(self, pos: int) -> int:
        char = self.contents[pos : pos + 1]
        if char == '"':
            match = _STRING_RE.match(self.contents, pos)
            if not match:
                raise PatchError(f"Unterminated string at offset {pos}")
            return match.end()
        if char == "{":
            return self._scan_object(pos)[1]
        if char == "[":
            return self._scan_array(pos)
        match = _LITERAL_RE.match(self.contents, pos)
        if not match:
            raise PatchError(f"Unexpected character at offset {pos}")
        return match.end()

    def _scan_array(self, pos: int) -> int:
        pos = self._skip(pos + 1)
        if self.contents[pos : pos + 1] == "]":
            return pos + 1
        while True:
            pos = self._skip(self._scan_value(pos))
            char = self.contents[pos : pos + 1]
            if char == ",":
                pos = self._skip(pos + 1)
            elif char == "]":
                return pos + 1
            else:
                raise PatchError(f"Expected , or ] at offset {pos}")

    def _scan_object(self, pos: int) -> tuple[list[_Member], int]:
        members: list[_Member] = []
        pos = self._skip(pos + 1)
        if self.contents[pos : pos + 1] == "}":
            return members, pos + 1
        while True:
            key = _STRING_RE.match(self.contents, pos)
            if not key:
                raise PatchError(f"Expected object key at offset {pos}")
            pos = self._skip(key.end())
            if self.contents[pos : pos + 1] != ":":
                raise PatchError(f"Expected : at offset {pos}")
            value_start = self._skip(pos + 1)
            value_end = self._scan_value(value_start)
            members.append(_Member(json.loads(key.group(0)), value_start, value_end))

            pos = self._skip(value_end)
            char = self.contents[pos : pos + 1]
            if char == ",":
                pos = self._skip(pos + 1)
            elif char == "}":
                return members, pos + 1
            else:
                raise PatchError(f"Expected , or }} at offset {pos}")

    def _root(self) -> list[_Member]:
        pos = self._skip(0)
        if self.contents[pos : pos + 1] != "{":
            raise PatchError("Manifest is not a JSON object")
        members, end = self._scan_object(pos)
        if self._skip(end) != len(self.contents):
            raise PatchError(f"Trailing content at offset {end}")
        return members

    def set_link(self, section: str, package: str, constraint: str) -> None:
        """Replace the constraint of an existing requirement.

        Raises:
            PatchError: If the requirement cannot be located unambiguously
                as a string value
        """
        sections = [m for m in self._root() if m.key == section]
        if len(sections) != 1:
            raise PatchError(f"Expected exactly one {section!r} section, found {len(sections)}")
        if self.contents[sections[0].value_start] != "{":
            raise PatchError(f"{section!r} is not an object")

        members, _ = self._scan_object(sections[0].value_start)
        # Composer package names are case-insensitive
        links = [m for m in members if m.key.lower() == package.lower()]
        if len(links) != 1:
            raise PatchError(f"Expected exactly one {package!r} in {section!r}, found {len(links)}")
        link = links[0]
        if self.contents[link.value_start] != '"':
            raise PatchError(f"Constraint of {package!r} is not a string")

        self.contents = (
            self.contents[: link.value_start]
            + json.dumps(constraint, ensure_ascii=False)
            + self.contents[link.value_end :]
        )


class PersistResult(enum.Enum):
    """How the manifest was written."""

    UNCHANGED = "unchanged"
    PATCHED = "patched"
    REWRITTEN = "rewritten"


def patch_contents(contents: str, decisions: Sequence[UpdateDecision]) -> str:
    """Apply every decision to the manifest text, or raise PatchError."""
    editor = ManifestEditor(contents)
    for decision in decisions:
        editor.set_link(decision.section, decision.package, decision.new_constraint)
    return editor.contents


def rewrite_data(data: dict, decisions: Sequence[UpdateDecision]) -> dict:
    """Apply every decision to parsed manifest data."""
    for decision in decisions:
        section = data.get(decision.section)
        if not isinstance(section, dict):
            section = data[decision.section] = {}
        section[decision.package] = decision.new_constraint
    return data


def persist(path: str | Path, decisions: Sequence[UpdateDecision]) -> PersistResult:
    """Write decisions to the manifest, preserving its formatting when possible.

    Args:
        path: Path of the manifest
        decisions: Decisions from ``compute_updates``

    Returns:
        Which strategy wrote the file

    Raises:
        ManifestNotFoundError: If the manifest does not exist
        ManifestError: If a rewrite is needed and the manifest is not valid JSON
    """
    json_file = JsonFile(path)
    if not decisions:
        return PersistResult.UNCHANGED

    contents = json_file.read_text()
    try:
        patched = patch_contents(contents, decisions)
    except PatchError as e:
        logger.debug("Cannot patch %s in place (%s), rewriting it", json_file.path, e)
        json_file.write(rewrite_data(json_file.decode(contents), decisions))
        return PersistResult.REWRITTEN

    json_file.write_text(patched)
    logger.debug("Patched %d constraints in %s", len(decisions), json_file.path)
    return PersistResult.PATCHED
