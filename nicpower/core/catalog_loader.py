"""Feature catalog loading and validation for YAML-based nicpower taxonomies."""

from __future__ import annotations

import functools
import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from nicpower.core.errors import CatalogLoadError, CatalogValidationError
from nicpower.core.model import POWER_MANAGEMENT_FEATURE, FeatureDefinition

LOGGER = logging.getLogger(__name__)

_BOOL_TAG = "tag:yaml.org,2002:bool"
_CATALOG_SUFFIXES = (".yml", ".yaml")


class CatalogYamlLoader(yaml.SafeLoader):
    """Safe loader for catalog files.

    Duplicate mapping keys are errors, and bare words such as ``On`` or
    ``Off`` stay strings since they are common in driver display names.
    """

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        keys = [self.construct_object(key_node, deep=deep) for key_node, _ in node.value]
        duplicates = sorted({str(key) for key in keys if keys.count(key) > 1})
        if duplicates:
            raise CatalogValidationError(f"Duplicate key '{duplicates[0]}' in YAML document")
        return super().construct_mapping(node, deep=deep)


CatalogYamlLoader.yaml_implicit_resolvers = {
    first_char: [(tag, regexp) for tag, regexp in resolvers if tag != _BOOL_TAG]
    for first_char, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


@dataclass(frozen=True)
class LoadedCatalog:
    features: tuple[FeatureDefinition, ...]
    warnings: tuple[str, ...]


@functools.lru_cache(maxsize=1)
def _schema_validator() -> Any:
    schema = json.loads(
        resources.files("nicpower.schemas").joinpath("catalog.schema.json").read_text(encoding="utf-8")
    )
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _parse_catalog(path: Path | Traversable) -> dict[str, Any]:
    try:
        doc = yaml.load(path.read_text(encoding="utf-8"), Loader=CatalogYamlLoader)
    except OSError as exc:
        raise CatalogLoadError(f"Could not read feature catalog {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise CatalogValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(doc, dict):
        raise CatalogValidationError(f"Feature catalog {path} must contain a mapping at root")
    try:
        _schema_validator().validate(doc)
    except ValidationError as exc:
        location = ".".join(str(p) for p in exc.path)
        where = f" ({location})" if location else ""
        raise CatalogValidationError(f"Schema validation failed for {path}{where}: {exc.message}") from exc
    return doc


def _build_features(doc: dict[str, Any], source: Path | Traversable) -> list[FeatureDefinition]:
    features: list[FeatureDefinition] = []
    seen: set[str] = set()
    for entry in doc["features"]:
        name = entry["name"].strip()
        if not name:
            raise CatalogValidationError(f"Feature name in {source} must not be blank")
        if name == POWER_MANAGEMENT_FEATURE:
            raise CatalogValidationError(f"Feature name '{name}' in {source} is reserved")
        if name in seen:
            raise CatalogValidationError(f"Feature '{name}' is defined twice in {source}")
        seen.add(name)

        patterns = tuple(p.strip() for p in entry["patterns"])
        if any(not p for p in patterns):
            raise CatalogValidationError(f"{name}: patterns must not be blank")
        if len({p.lower() for p in patterns}) != len(patterns):
            raise CatalogValidationError(f"{name}: patterns must be unique (case-insensitive)")

        features.append(FeatureDefinition(name=name, patterns=patterns, description=entry.get("description", "")))
    return features


def _packaged_catalog_paths() -> list[Traversable]:
    catalog_root = resources.files("nicpower.catalog")
    return sorted(
        (item for item in catalog_root.iterdir() if item.name.endswith(_CATALOG_SUFFIXES)),
        key=lambda item: item.name,
    )


def _user_catalog_paths() -> list[Path]:
    """Catalog files under the XDG config and data directories, config first."""
    roots = (
        Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")),
        Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share")),
    )
    paths: list[Path] = []
    for directory in (root / "nicpower/features" for root in roots):
        if directory.is_dir():
            paths.extend(sorted(p for p in directory.iterdir() if p.suffix in _CATALOG_SUFFIXES))
    return paths


def load_catalog() -> LoadedCatalog:
    features: dict[str, FeatureDefinition] = {}
    warnings: list[str] = []

    for path in _packaged_catalog_paths():
        for feature in _build_features(_parse_catalog(path), path):
            features[feature.name] = feature

    for path in _user_catalog_paths():
        for feature in _build_features(_parse_catalog(path), path):
            if feature.name in features:
                warning = f"User feature '{feature.name}' from {path} overrides packaged definition"
                LOGGER.warning(warning)
                warnings.append(warning)
            features[feature.name] = feature

    return LoadedCatalog(features=tuple(features.values()), warnings=tuple(warnings))
