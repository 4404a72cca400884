"""Static reference dataset: the tracked catalogue and its baseline values.

The dataset is the universe of valid entity ids and the ultimate fallback
for every displayed field.  It ships as ``data/reference.json`` inside the
package and is never mutated at runtime.
"""

from __future__ import annotations

import importlib.resources
import json
import logging
from collections.abc import Iterator, Sequence
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from globalmarkets.exceptions import ConfigError
from globalmarkets.models.reference import ReferenceEntity, TrackedEntity

_logger = logging.getLogger(__name__)

_ENTITY_LIST = TypeAdapter(list[ReferenceEntity])


class StaticReferenceDataset(Sequence[ReferenceEntity]):
    """Ordered, immutable catalogue of reference entities."""

    def __init__(self, entities: Sequence[ReferenceEntity]) -> None:
        self._entities: tuple[ReferenceEntity, ...] = tuple(entities)
        self._by_id: dict[str, ReferenceEntity] = {}
        for entity in self._entities:
            if entity.id in self._by_id:
                raise ConfigError(f"duplicate entity id in reference dataset: {entity.id}")
            self._by_id[entity.id] = entity

    @classmethod
    def load(cls, path: Path | None = None) -> StaticReferenceDataset:
        """Load the dataset from *path*, or from the bundled package data."""
        if path is not None:
            _logger.debug("Loading reference dataset from %s", path)
            try:
                raw = path.read_text(encoding="utf-8")
            except FileNotFoundError as exc:
                raise ConfigError(f"Reference dataset not found: {path}") from exc
        else:
            _logger.debug("Loading reference dataset from package data")
            raw = importlib.resources.files("globalmarkets").joinpath("data/reference.json").read_text(encoding="utf-8")
        try:
            entities = _ENTITY_LIST.validate_python(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ConfigError(f"Invalid reference dataset: {exc}") from exc
        return cls(entities)

    def __getitem__(self, index):  # type: ignore[override]
        return self._entities[index]

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[ReferenceEntity]:
        return iter(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._by_id

    def get(self, entity_id: str) -> ReferenceEntity | None:
        return self._by_id.get(entity_id)

    def ids(self) -> list[str]:
        return [entity.id for entity in self._entities]

    def tracked(self) -> list[TrackedEntity]:
        """Tracked entities in catalogue order."""
        return [entity.tracked() for entity in self._entities]

    def country_codes(self) -> dict[str, str]:
        """Entity id to ISO 3166-1 alpha-3 code, for entities that have one."""
        return {entity.id: entity.country_code for entity in self._entities if entity.country_code}


_DEFAULT: StaticReferenceDataset | None = None


def default_dataset() -> StaticReferenceDataset:
    """Return the bundled dataset, loading it on first use."""
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = StaticReferenceDataset.load()
    return _DEFAULT
