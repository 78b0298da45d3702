"""Property-to-feature matching logic."""

from __future__ import annotations

from collections.abc import Sequence

from nicpower.core.model import AdapterProperty, FeatureDefinition


def pattern_matches(pattern: str, display_name: str) -> bool:
    return pattern.lower() in display_name.lower()


def match_property(
    feature: FeatureDefinition,
    properties: Sequence[AdapterProperty],
) -> AdapterProperty | None:
    """Return the property for the earliest pattern that matches anything.

    Patterns are tried in declared order, so an earlier pattern wins even when
    a later one matches a property listed first.
    """
    for pattern in feature.patterns:
        for prop in properties:
            if pattern_matches(pattern, prop.display_name):
                return prop
    return None
