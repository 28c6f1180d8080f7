"""Change detection between stored and incoming device state."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pyinode.models.manufacturer import DeviceModel

_ABSENT = object()


def _differs(new: Any, old: Any) -> bool:
    if old is _ABSENT:
        return True
    return type(new) is not type(old) or new != old


def _composite_differs(new: Mapping[str, Any], old: Any) -> bool:
    if not isinstance(old, Mapping):
        return True
    return any(_differs(value, old.get(key, _ABSENT)) for key, value in new.items())


def compare(old: Mapping[str, Any], new: Mapping[str, Any]) -> dict[str, Any]:
    """Return the subset of *new* that differs from *old*.

    Keys missing from *new* were not received and never count as changes.
    Mapping values are compared shallowly on their own keys; a single
    differing key yields the whole incoming mapping, which replaces the
    stored one.
    """
    changes: dict[str, Any] = {}
    for key, value in new.items():
        previous = old.get(key, _ABSENT)
        if isinstance(value, Mapping):
            if _composite_differs(value, previous):
                changes[key] = dict(value)
        elif _differs(value, previous):
            changes[key] = value
    return changes


@dataclass(frozen=True, slots=True)
class StateDiff:
    """Result of applying one advertising report to a device.

    ``model`` is set only when the report switched the device to a new
    model, in which case every register was rewritten.
    """

    changes: dict[str, Any] = field(default_factory=dict)
    model: DeviceModel | None = None

    @property
    def model_changed(self) -> bool:
        return self.model is not None

    def __bool__(self) -> bool:
        return bool(self.changes) or self.model_changed
