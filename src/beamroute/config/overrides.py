from __future__ import annotations


# Overrides come from CLI flags or library callers as plain dicts, so typing stays loose here
# and we rely on clear error messages when the shape is unexpected.
from typing import Any, Mapping

from beamroute.config.settings import Settings

"""
Per-run settings overrides (safe subset).

The CLI and library callers can pass `settings_overrides` to tune search knobs for a
single planning run. This module:
- validates the override payload against a whitelist,
- deep-merges the safe subset onto current settings,
- re-validates with Pydantic so ranges (e.g. `beam_width >= 1`) still hold.

Input/output paths are not overridable here; they are passed explicitly instead.
"""

# Which parts of the global Settings object can be overridden for one run.
#
# How to read this structure:
# - A value of True means "allow any keys under this subtree".
# - A nested dict means "only allow the listed keys, recursively".

ALLOWED_SETTINGS_OVERRIDES_TREE: dict[str, Any] = {
    # Beam width, step budget and worker count only change how hard each search works.
    "search": True,
    # Output formatting is safe; the report path is not.
    "output": {"indent": True},
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    # Build a new dict so the caller's `base` (often from the cached settings) is never mutated.
    merged: dict[str, Any] = dict(base)
    for key, override_value in override.items():
        # Both sides are mappings: merge recursively so sibling keys survive.
        if isinstance(override_value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), override_value)
            continue
        # Otherwise the override replaces the base value.
        merged[key] = override_value
    return merged


def _filter_overrides(
    overrides: Mapping[str, Any],
    *,
    allowed_tree: Mapping[str, Any],
    path: tuple[str, ...] = (),
) -> dict[str, Any]:
    filtered: dict[str, Any] = {}
    for key, value in overrides.items():
        # Unknown keys are rejected with their full dotted path.
        if key not in allowed_tree:
            dotted_path = ".".join((*path, key))
            raise ValueError(
                f"settings_overrides contains a disallowed key: '{dotted_path}'"
            )

        allowed = allowed_tree[key]
        if allowed is True:
            filtered[key] = value
            continue

        # A restricted subtree must be given as a mapping we can recurse into.
        if not isinstance(value, Mapping):
            dotted_path = ".".join((*path, key))
            raise ValueError(
                f"settings_overrides key '{dotted_path}' must be a mapping"
            )

        filtered[key] = _filter_overrides(
            value, allowed_tree=allowed, path=(*path, key)
        )
    return filtered


def apply_settings_overrides(
    settings: Settings, overrides: Mapping[str, Any] | None
) -> Settings:
    # No overrides: hand back the very same object (cheap, and callers may rely on identity).
    if not overrides:
        return settings

    # Validate and strip overrides to the safe subset (raises ValueError on disallowed keys).
    safe_overrides = _filter_overrides(
        overrides, allowed_tree=ALLOWED_SETTINGS_OVERRIDES_TREE
    )

    merged_payload = _deep_merge(settings.model_dump(mode="python"), safe_overrides)

    # Re-validate so an override such as beam_width=0 fails before any search starts.
    return Settings.model_validate(merged_payload)
