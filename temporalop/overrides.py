"""Applying user overrides to generated Kubernetes objects.

Objects are plain dictionaries in their Kubernetes JSON shape.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping, NamedTuple

_DIRECTIVE = "$patch"


class _ListField(NamedTuple):
    merge_key: str
    item_schema: Mapping[str, "_ListField"]


_CONTAINER_SCHEMA: Mapping[str, _ListField] = {
    "env": _ListField("name", {}),
    "ports": _ListField("containerPort", {}),
    "volumeMounts": _ListField("mountPath", {}),
    "volumeDevices": _ListField("devicePath", {}),
}

_POD_SPEC_SCHEMA: Mapping[str, _ListField] = {
    "containers": _ListField("name", _CONTAINER_SCHEMA),
    "initContainers": _ListField("name", _CONTAINER_SCHEMA),
    "ephemeralContainers": _ListField("name", _CONTAINER_SCHEMA),
    "volumes": _ListField("name", {}),
    "imagePullSecrets": _ListField("name", {}),
    "hostAliases": _ListField("ip", {}),
    "topologySpreadConstraints": _ListField("topologyKey", {}),
}


@dataclass
class ObjectMetaOverride:
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class PodTemplateSpecOverride:
    metadata: ObjectMetaOverride | None = None
    spec: dict[str, Any] | None = None


@dataclass
class DeploymentOverride:
    metadata: ObjectMetaOverride | None = None
    template: PodTemplateSpecOverride | None = None


def _merge_field(current: Any, value: Any, list_field: _ListField | None) -> Any:
    if isinstance(value, dict):
        return _merge_map(current if isinstance(current, dict) else {}, value, {})
    if isinstance(value, list) and list_field is not None:
        return _merge_list(current if isinstance(current, list) else [], value, list_field)
    return copy.deepcopy(value)


def _merge_map(
    original: dict[str, Any], patch: dict[str, Any], schema: Mapping[str, _ListField]
) -> dict[str, Any] | None:
    """Merge patch into original; None means the map is deleted."""
    directive = patch.get(_DIRECTIVE)
    if directive == "delete":
        return None
    if directive == "replace":
        return {k: copy.deepcopy(v) for k, v in patch.items() if k != _DIRECTIVE}
    if directive is not None:
        raise ValueError(f"unknown patch type: {directive}")

    result = copy.deepcopy(original)
    for key, value in patch.items():
        if key == _DIRECTIVE:
            continue
        if value is None:
            result.pop(key, None)
            continue
        merged = _merge_field(result.get(key), value, schema.get(key))
        if merged is None:
            result.pop(key, None)
        else:
            result[key] = merged
    return result


def _merge_list(original: list[Any], patch: list[Any], list_field: _ListField) -> list[Any]:
    key = list_field.merge_key
    remaining = copy.deepcopy(original)
    merged_items = []
    for item in patch:
        if not isinstance(item, dict) or key not in item:
            raise ValueError(f"map: {item} does not contain declared merge key: {key}")
        index = next(
            (i for i, existing in enumerate(remaining)
             if isinstance(existing, dict) and existing.get(key) == item[key]),
            None,
        )
        base = remaining.pop(index) if index is not None else {}
        merged = _merge_map(base, item, list_field.item_schema)
        if merged is not None:
            merged_items.append(merged)
    return merged_items + remaining


def patch_pod_spec(spec: Mapping[str, Any], override: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Strategic-merge the override into a copy of the pod spec; None without override."""
    if override is None:
        return None
    try:
        result = _merge_map(dict(spec), dict(override), _POD_SPEC_SCHEMA)
    except ValueError as exc:
        raise ValueError(f"can't patch pod spec: {exc}") from exc
    return {} if result is None else result


def _apply_metadata(obj: dict[str, Any], override: ObjectMetaOverride) -> None:
    for key, values in (("labels", override.labels), ("annotations", override.annotations)):
        if values:
            metadata = obj.setdefault("metadata", {})
            metadata[key] = {**(metadata.get(key) or {}), **values}


def apply_pod_template_spec_overrides(
    pod_template: dict[str, Any], override: PodTemplateSpecOverride | None
) -> None:
    """Apply the override to the pod template in place."""
    if override is None:
        return
    if override.metadata is not None:
        _apply_metadata(pod_template, override.metadata)
    if override.spec is not None:
        # An empty container list in an override must not wipe the existing containers.
        spec_patch = {
            key: value
            for key, value in override.spec.items()
            if not (key in ("containers", "initContainers") and not value)
        }
        patched = patch_pod_spec(pod_template.get("spec") or {}, spec_patch)
        if patched is not None:
            pod_template["spec"] = patched


def apply_deployment_overrides(deployment: dict[str, Any], override: DeploymentOverride | None) -> None:
    """Apply the override to the deployment in place."""
    if override is None:
        return
    if override.metadata is not None:
        _apply_metadata(deployment, override.metadata)
    if override.template is not None:
        template = deployment.setdefault("spec", {}).setdefault("template", {})
        apply_pod_template_spec_overrides(template, override.template)


def apply_service_overrides(service: dict[str, Any], override: ObjectMetaOverride | None) -> None:
    """Merge the override's labels and annotations into the service in place."""
    if override is None:
        return
    _apply_metadata(service, override)