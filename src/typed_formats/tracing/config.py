"""Tracer configuration."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from typed_formats.formats import PrimitiveKind


def _default_values() -> dict[PrimitiveKind, Any]:
    values: dict[PrimitiveKind, Any] = {kind: 0 for kind in PrimitiveKind if kind.is_integer}
    values.update({
        PrimitiveKind.UNIT: None,
        PrimitiveKind.BOOL: False,
        PrimitiveKind.F32: 0.0,
        PrimitiveKind.F64: 0.0,
        PrimitiveKind.CHAR: "A",
        PrimitiveKind.STR: "",
        PrimitiveKind.BYTES: b"",
    })
    return values


@dataclass(frozen=True)
class TracerConfig:
    """Settings of a tracing session.

    Attributes:
        record_samples_for_newtype_structs: Reuse values recorded by
            ``trace_value`` when a newtype struct is deserialized.
        record_samples_for_tuple_structs: Same, for tuple structs.
        record_samples_for_structs: Same, for structs with named fields.
        max_depth: Maximum number of containers nested on the active path
            before RecursionLimitExceeded is raised.
        default_values: Synthetic value handed out for each primitive kind.
    """

    record_samples_for_newtype_structs: bool = True
    record_samples_for_tuple_structs: bool = False
    record_samples_for_structs: bool = False
    max_depth: int = 64
    default_values: dict[PrimitiveKind, Any] = field(default_factory=_default_values)

    def default_value(self, kind: PrimitiveKind) -> Any:
        """Return the synthetic value for a primitive kind."""
        return self.default_values[kind]

    def with_default(self, kind: PrimitiveKind, value: Any) -> TracerConfig:
        """Return a copy handing out ``value`` for ``kind``."""
        return replace(self, default_values={**self.default_values, kind: value})
