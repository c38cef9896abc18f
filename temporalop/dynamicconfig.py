"""Conversion of dynamic configuration specs to the server's file format."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Constraints:
    namespace: str = ""
    namespace_id: str = ""
    task_queue_name: str = ""
    task_queue_type: str = ""
    task_type: str = ""
    shard_id: int = 0


@dataclass
class ConstrainedValue:
    """A raw JSON value applied under the given constraints."""

    value: str | bytes | None = None
    constraints: Constraints = field(default_factory=Constraints)


@dataclass
class DynamicConfigSpec:
    values: dict[str, list[ConstrainedValue]] = field(default_factory=dict)


@dataclass
class YamlConstrainedValue:
    constraints: dict[str, Any]
    value: Any


YamlDynamicConfig = dict[str, list[YamlConstrainedValue]]


def _to_yaml_value(cv: ConstrainedValue) -> YamlConstrainedValue:
    c = cv.constraints
    constraints: dict[str, Any] = {}
    if c.namespace:
        constraints["namespace"] = c.namespace
    if c.namespace_id:
        constraints["namespaceid"] = c.namespace_id
    if c.task_queue_name:
        constraints["taskqueuename"] = c.task_queue_name
    # The server reads the task queue type under "tasktype"
    # and the history task type under "historytasktype".
    if c.task_queue_type:
        constraints["tasktype"] = c.task_queue_type
    if c.task_type:
        constraints["historytasktype"] = c.task_type
    if c.shard_id != 0:
        constraints["shardid"] = c.shard_id

    if cv.value is None:
        raise ValueError("constrained value has no value")
    value = json.loads(cv.value, parse_int=float)
    return YamlConstrainedValue(constraints=constraints, value=value)


def dynamic_config_to_yaml(spec: DynamicConfigSpec) -> YamlDynamicConfig:
    """Convert a spec; JSON numbers come back as floats."""
    return {key: [_to_yaml_value(cv) for cv in values] for key, values in spec.values.items()}