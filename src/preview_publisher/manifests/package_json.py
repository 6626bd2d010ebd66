"""Accessor for npm package.json manifests."""

import json
from pathlib import Path
from typing import Any

from preview_publisher.errors import ManifestError
from preview_publisher.manifests.base import BaseManifest


class PackageJsonManifest(BaseManifest):
    """Reads and writes fields of an npm package.json.

    Writes use two-space indentation and a trailing newline, matching the
    layout npm itself produces. Key order is preserved.
    """

    @property
    def manifest_name(self) -> str:
        return "package.json"

    @classmethod
    def can_handle(cls, package_dir: Path) -> bool:
        return (package_dir / "package.json").is_file()

    def _load(self) -> dict[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ManifestError(f"package.json not found: {self.path}") from e
        except json.JSONDecodeError as e:
            raise ManifestError(f"Invalid JSON in {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ManifestError(f"Expected a JSON object in {self.path}")
        return data

    def _dump(self, data: dict[str, Any]) -> None:
        self.path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")

    def _read_field(self, field_name: str) -> str:
        value = self._load().get(field_name)
        if not isinstance(value, str) or not value:
            raise ManifestError(f"Missing '{field_name}' field in {self.path}")
        return value

    def _write_field(self, field_name: str, value: str) -> None:
        data = self._load()
        data[field_name] = value
        self._dump(data)

    def read_name(self) -> str:
        return self._read_field("name")

    def write_name(self, value: str) -> None:
        self._write_field("name", value)

    def read_version(self) -> str:
        return self._read_field("version")

    def write_version(self, value: str) -> None:
        self._write_field("version", value)

    def is_private(self) -> bool:
        return self._load().get("private") is True
