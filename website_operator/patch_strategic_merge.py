"""
In memory application of a Strategic Merge Patch, as the API server applies
application/strategic-merge-patch+json. The dry run cluster uses it so that a
patch touches exactly the fields it would touch in a live cluster.

Only the parts of the patch format the operator sends are supported: dicts
merge key by key with null deleting a key, lists with a known merge key are
merged element by element, and every other value is overwritten.
"""

# Standard
from typing import Dict, Optional
import copy

# Third Party
from openshift.dynamic.apply import STRATEGIC_MERGE_PATCH_KEYS

# First Party
import alog

log = alog.use_channel("PATCH")


def patch_strategic_merge(
    resource_definition: dict,
    patch: dict,
    merge_patch_keys: Optional[Dict[str, str]] = None,
) -> dict:
    """Apply a Strategic Merge Patch to a manifest

    Args:
        resource_definition:  dict
            The dict representation of the kubernetes resource
        patch:  dict
            The patch to apply
        merge_patch_keys:  Optional[Dict[str, str]]
            Mapping from "<Kind>.<dotted.path>" to the key that identifies the
            elements of the list at that path. Defaults to the kubernetes
            built-in keys.

    Returns:
        patched_resource_definition:  dict
            A patched copy of the resource_definition
    """
    return _merge(
        copy.deepcopy(resource_definition),
        copy.deepcopy(patch),
        resource_definition.get("kind"),
        STRATEGIC_MERGE_PATCH_KEYS if merge_patch_keys is None else merge_patch_keys,
    )


def _merge(current, desired, position: str, merge_patch_keys: Dict[str, str]):
    if isinstance(current, dict) and isinstance(desired, dict):
        for key, val in desired.items():
            if val is None:
                current.pop(key, None)
            elif key in current:
                current[key] = _merge(
                    current[key], val, f"{position}.{key}", merge_patch_keys
                )
            else:
                current[key] = val
        return current

    merge_key = merge_patch_keys.get(position)
    if merge_key and isinstance(current, list) and isinstance(desired, list):
        log.debug4("Merging list at [%s] by [%s]", position, merge_key)
        for item in current + desired:
            if not isinstance(item, dict) or merge_key not in item:
                raise ValueError(f"Element at [{position}] has no [{merge_key}]")
        merged = {item[merge_key]: item for item in current}
        for item in desired:
            existing = merged.get(item[merge_key])
            merged[item[merge_key]] = (
                item
                if existing is None
                # List nesting is not represented in the position
                else _merge(existing, item, position, merge_patch_keys)
            )
        return list(merged.values())

    log.debug4("Overwriting [%s]", position)
    return desired
