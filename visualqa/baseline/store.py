"""Baseline store: persistent keyed repository of accepted reference screenshots."""

from __future__ import annotations

import hashlib
import json
import logging
import shutil
import time
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError

from visualqa.models.suite_result import baseline_key, image_relpath
from visualqa.models.visual_baseline import BaselineEntry, BaselineRegistry

logger = logging.getLogger(__name__)


class BaselineNotFoundError(KeyError):
    """No baseline has been recorded for the key."""


class BaselineExistsError(RuntimeError):
    """A normal write was attempted for a key that already has a baseline."""


class BaselineStoreUnavailableError(OSError):
    """The store's medium could not be read or written."""


class BaselineStore(Protocol):
    def has(self, key: str) -> bool: ...

    def read(self, key: str) -> BaselineEntry: ...

    def write(self, key: str, source_image: Path) -> BaselineEntry: ...

    def regenerate(self, key: str, source_image: Path) -> BaselineEntry: ...

    def image_path(self, entry: BaselineEntry) -> Path: ...


class FileBaselineStore:
    """Baseline images on disk plus a JSON registry describing them.

    Layout::

        <root>/registry.json
        <root>/images/<scenario>/page.png
        <root>/images/<scenario>/areas/<area>.png
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.registry_path = self.root / "registry.json"

    # -- Registry I/O --------------------------------------------------------

    def _load(self) -> BaselineRegistry:
        if self.root.exists() and not self.root.is_dir():
            raise BaselineStoreUnavailableError(f"Baseline root is not a directory: {self.root}")
        if not self.registry_path.exists():
            return BaselineRegistry()
        try:
            with open(self.registry_path) as f:
                data = json.load(f)
            return BaselineRegistry(**data)
        except (OSError, ValueError, TypeError, ValidationError) as e:
            # A registry we cannot parse is not the same as "no baselines".
            raise BaselineStoreUnavailableError(
                f"Baseline registry unreadable ({self.registry_path}): {e}"
            ) from e

    def _save(self, registry: BaselineRegistry) -> None:
        registry.last_updated = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        try:
            self.registry_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.registry_path, "w") as f:
                json.dump(registry.model_dump(), f, indent=2)
        except OSError as e:
            raise BaselineStoreUnavailableError(f"Cannot write baseline registry: {e}") from e
        logger.debug("Saved baseline registry to %s", self.registry_path)

    # -- Contract ------------------------------------------------------------

    def has(self, key: str) -> bool:
        return self._lookup(self._load(), key) is not None

    def read(self, key: str) -> BaselineEntry:
        entry = self._lookup(self._load(), key)
        if entry is None:
            raise BaselineNotFoundError(key)
        return entry

    def write(self, key: str, source_image: Path) -> BaselineEntry:
        """Record the first baseline for ``key``. Never overwrites."""
        registry = self._load()
        if self._lookup(registry, key) is not None:
            raise BaselineExistsError(f"Baseline already exists for {key}")
        return self._store(registry, key, source_image, regenerated=False)

    def regenerate(self, key: str, source_image: Path) -> BaselineEntry:
        """Operator action: replace (or create) the baseline for ``key``."""
        registry = self._load()
        return self._store(registry, key, source_image, regenerated=True)

    def entries(self) -> list[BaselineEntry]:
        registry = self._load()
        return [registry.baselines[k] for k in sorted(registry.baselines)]

    def image_path(self, entry: BaselineEntry) -> Path:
        """Return the absolute path to a baseline image."""
        return self.root / entry.image_path

    # -- Internal ------------------------------------------------------------

    def _lookup(self, registry: BaselineRegistry, key: str) -> Optional[BaselineEntry]:
        entry = registry.baselines.get(key)
        if entry is None:
            return None
        # Verify the image file still exists
        if not self.image_path(entry).exists():
            logger.warning("Baseline image missing for %s: %s", key, self.image_path(entry))
            return None
        return entry

    def _destination(self, scenario: str, area: Optional[str]) -> Path:
        return self.root / "images" / image_relpath(scenario, area)

    def _store(
        self, registry: BaselineRegistry, key: str, source_image: Path, regenerated: bool,
    ) -> BaselineEntry:
        source_image = Path(source_image)
        if not source_image.is_file():
            # Bad input, not a store fault
            raise FileNotFoundError(f"Source image for {key} not found: {source_image}")
        scenario, _, area = key.partition("__")
        dest = self._destination(scenario, area or None)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source_image, dest)
            image_hash = hashlib.sha256(dest.read_bytes()).hexdigest()
        except OSError as e:
            raise BaselineStoreUnavailableError(f"Cannot store baseline image for {key}: {e}") from e

        entry = BaselineEntry(
            key=baseline_key(scenario, area or None),
            scenario=scenario,
            area=area or None,
            image_path=str(dest.relative_to(self.root)),
            created_at=time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            image_hash=image_hash,
            regenerated=regenerated,
        )
        registry.baselines[key] = entry
        self._save(registry)
        logger.info("%s baseline for %s", "Regenerated" if regenerated else "Stored", key)
        return entry
