"""Base model and enum for decoded iNode payloads.

Every payload model inherits from :class:`InodeBaseModel` which provides
``alias_generator=to_camel`` so the camelCase keys produced by iNode
decoders (``batteryLevel``, ``moveGTimer``) map onto snake_case fields.

Enums inherit from :class:`InodeEnum` which adds an ``UNKNOWN`` member at
``-1`` and a ``_missing_`` hook that returns ``UNKNOWN`` for any value
without a mapped member.
"""

from __future__ import annotations

import enum
import math
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from pyinode.ingestion.normalize import normalize_timestamp_seconds


def parse_inode_timestamp(value: Any) -> datetime | None:
    """Convert an epoch timestamp (seconds **or** milliseconds) to a UTC datetime."""
    if value is None or isinstance(value, datetime):
        return value
    ts = normalize_timestamp_seconds(value)
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=UTC)


InodeTimestamp = Annotated[datetime | None, BeforeValidator(parse_inode_timestamp)]
"""Annotated type that coerces epoch ints (seconds or ms) to UTC datetimes."""


class InodeEnum(enum.IntEnum):
    """Base for decoded enums.

    Every subclass **must** define ``UNKNOWN = -1``.
    """

    @classmethod
    def _missing_(cls, value: object) -> InodeEnum:
        unknown: InodeEnum = cls.UNKNOWN  # type: ignore[attr-defined]
        return unknown


class InodeBaseModel(BaseModel):
    """Base for decoded payload models.

    Non-finite floats (NaN, infinity) are dropped before validation, so
    the field counts as not received.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def received(self) -> dict[str, Any]:
        """Return only the fields present in the decoded payload.

        Fields the decoder did not send are omitted entirely, while fields
        explicitly sent as ``None`` are kept.
        """
        return self.model_dump(exclude_unset=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_non_finite(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return {
            key: value
            for key, value in values.items()
            if not (isinstance(value, float) and not math.isfinite(value))
        }
