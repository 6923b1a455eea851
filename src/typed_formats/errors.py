"""Errors raised while tracing formats and reconciling registries."""

from __future__ import annotations

from typing import Any, Iterable


def format_path(path: Iterable[str]) -> str:
    """Render a breadcrumb path as ``Container.field.Variant``."""
    return ".".join(path)


class TracingError(Exception):
    """Base class for every failure of a tracing session.

    Every error carries the breadcrumb path (containers, fields and variants)
    that was being explored when it was raised.
    """

    def __init__(self, message: str, path: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.path: tuple[str, ...] = tuple(path)

    def attach_path(self, path: Iterable[str]) -> None:
        """Record the breadcrumb path unless an inner frame already did."""
        if not self.path:
            self.path = tuple(path)

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} (at {format_path(self.path)})"
        return self.message


class UnsupportedType(TracingError):
    """An observed operation has no format mapping."""


class UnknownVariantIndex(TracingError):
    """Raised by enum logic when asked for a discriminant it does not define.

    The tracer uses it to stop discriminant probing. ``enum_name`` is filled in
    by the deserializer that requested the variant.
    """

    def __init__(self, index: int, enum_name: str | None = None, path: Iterable[str] = ()) -> None:
        super().__init__(f"Unknown variant index {index}", path)
        self.index = index
        self.enum_name = enum_name

    def __str__(self) -> str:
        text = self.message
        if self.enum_name is not None:
            text = f"{text} for enum '{self.enum_name}'"
        if self.path:
            text = f"{text} (at {format_path(self.path)})"
        return text


class InconsistentFormat(TracingError):
    """Two observations of the same container disagree.

    ``location`` is the path inside the registry where the shapes diverge
    (container name first). ``sources`` names the trace paths of both
    observations when they are known.
    """

    def __init__(
        self,
        expected: Any,
        found: Any,
        location: Iterable[str] = (),
        sources: Iterable[str] = (),
        path: Iterable[str] = (),
    ) -> None:
        self.expected = expected
        self.found = found
        self.location: tuple[str, ...] = tuple(location)
        self.sources: tuple[str, ...] = tuple(sources)
        super().__init__("Inconsistent formats", path)

    @property
    def name(self) -> str | None:
        """Name of the container whose observations conflict."""
        return self.location[0] if self.location else None

    def __str__(self) -> str:
        where = format_path(self.location) or format_path(self.path) or "<root>"
        text = f"Inconsistent formats at {where}: {self.expected!r} vs {self.found!r}"
        if self.sources:
            text += f" (observed at {' and '.join(self.sources)})"
        return text


class RecursionLimitExceeded(TracingError):
    """A type graph did not reach a base case within the depth bound."""

    def __init__(self, limit: int, path: Iterable[str] = ()) -> None:
        super().__init__(f"Exceeded the maximum tracing depth of {limit}", path)
        self.limit = limit


class IncompleteRegistry(TracingError):
    """Finalization found unknown formats, dangling references or gaps."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Incomplete format for '{name}': {reason}")
        self.name = name
        self.reason = reason


class MissingVariants(IncompleteRegistry):
    """An enum was observed but its variants were never fully probed."""

    def __init__(self, name: str) -> None:
        super().__init__(name, "not all variants were traced")


class SerializationError(TracingError):
    """The traced value's own serialization logic failed."""


class DeserializationError(TracingError):
    """The traced type's own construction logic rejected a synthetic value.

    Recording a sample with ``Tracer.trace_value`` usually fixes this for
    types that validate their input.
    """
