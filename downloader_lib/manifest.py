"""Manifest model and dependency expansion.

A manifest is a JSON object mapping asset-id to an asset record::

    {
      "sfiii3nr1": {
        "download": "https://example.org/get?file=sfiii3nr1.zip",
        "require": ["sfiii3"]
      },
      "naomi": {
        "download": "https://example.org/naomi.zip",
        "copy_to": "naomi_bios.zip",
        "extract_to": [{"src": "epr-21576h.ic27", "dst": "data/naomi_boot.bin"}]
      }
    }

Records are validated lazily with pydantic so one malformed entry only
affects the asset that uses it.
"""
import json
import logging
from collections import deque
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from downloader_lib.errors import ConfigurationError


class ExtractPair(BaseModel):
    """One archive member and where it goes, relative to the output root."""

    src: str = Field(..., description="Exact member name inside the archive")
    dst: str = Field(..., description="Destination path relative to the roms folder")


class AssetRecord(BaseModel):
    """A single downloadable asset as described by the manifest."""

    model_config = ConfigDict(extra="ignore")

    download: str = Field(..., description="URL to download from")
    copy_to: Optional[str] = Field(None, description="Filename override for the downloaded artifact")
    extract_to: Optional[List[ExtractPair]] = Field(
        None, description="Members to place individually; the archive itself is transient")
    require: Optional[List[str]] = None
    # Some published packs spell the key "required". Only read when "require" is absent.
    required: Optional[List[str]] = None

    @property
    def is_archive(self) -> bool:
        return self.extract_to is not None

    def dependencies(self) -> List[str]:
        """Dependency ids in manifest order, ``require`` taking precedence over ``required``."""
        if self.require is not None:
            return list(self.require)
        if self.required is not None:
            return list(self.required)
        return []


class Manifest:
    """Read-only view over a parsed manifest document."""

    def __init__(self, records: Dict[str, dict], source: str = ''):
        self._records = records
        self.source = source
        self._parsed: Dict[str, AssetRecord] = {}

    def __contains__(self, asset_id: str) -> bool:
        return asset_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, asset_id: str) -> Optional[AssetRecord]:
        """Return the validated record, or None when the id is absent.

        Raises pydantic.ValidationError when the entry exists but is malformed.
        """
        if asset_id not in self._records:
            return None
        if asset_id not in self._parsed:
            self._parsed[asset_id] = AssetRecord.model_validate(self._records[asset_id])
        return self._parsed[asset_id]


def load_manifest(path: Path) -> Manifest:
    """Read a manifest file. Raises ConfigurationError when the document is unusable."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to open file [{Path(path).name}]: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Manifest [{Path(path).name}] is not a JSON object")
    return Manifest(data, source=Path(path).name)


def expand_dependencies(manifest: Manifest, root_id: str, recursive: bool = False,
                        logger: Optional[logging.Logger] = None) -> List[str]:
    """Build the work queue for ``root_id``.

    The root comes first, followed by its declared dependencies in manifest
    order. Only one level is expanded and duplicates are kept, unless
    ``recursive`` is set: then the whole dependency graph is walked
    breadth-first and every id appears once, so cyclic manifests terminate.

    Returns an empty list when the root is not in the manifest.
    """
    if root_id not in manifest:
        print(f"   - Rom [{root_id}] not found for [{manifest.source}].")
        if logger:
            logger.warning(f"Rom {root_id} not found in {manifest.source}")
        return []

    try:
        root = manifest.get(root_id)
    except ValidationError as e:
        print(f"   - Rom [{root_id}] has an invalid entry in [{manifest.source}].")
        if logger:
            logger.warning(f"Invalid manifest entry for {root_id}: {e}")
        return []

    if not recursive:
        return [root_id] + root.dependencies()

    queue = [root_id]
    seen = {root_id}
    pending = deque(root.dependencies())
    while pending:
        asset_id = pending.popleft()
        if asset_id in seen:
            continue
        seen.add(asset_id)
        queue.append(asset_id)
        try:
            record = manifest.get(asset_id)
        except ValidationError:
            # reported again when the orchestrator reaches it
            continue
        if record is not None:
            pending.extend(record.dependencies())
    return queue
