"""Session context threaded through the nested calls of one trace pass."""

from __future__ import annotations

from contextlib import ExitStack, contextmanager
from itertools import count
from typing import Any, Iterator

from typed_formats.errors import (
    DeserializationError,
    InconsistentFormat,
    RecursionLimitExceeded,
    TracingError,
    format_path,
)
from typed_formats.formats import EnumFormat, Named, Shape, unify
from typed_formats.registry import Registry
from typed_formats.serde import EnumVisitor
from typed_formats.tracing.config import TracerConfig
from typed_formats.tracing.value import Samples


class TraceContext:
    """Mutable state of one trace pass.

    The registry, samples and captured enum visitors belong to the session and
    are shared by all its passes. The breadcrumb path and the active
    containers belong to the pass.
    """

    def __init__(
        self,
        registry: Registry,
        config: TracerConfig,
        samples: Samples,
        visitors: dict[str, EnumVisitor],
        probe: tuple[str, int] | None = None,
        failure: type[TracingError] = DeserializationError,
    ) -> None:
        self.registry = registry
        self.config = config
        self.samples = samples
        self.visitors = visitors
        self.probe = probe
        self._failure = failure
        self.path: list[str] = []
        self.active: list[str] = []
        self._anchors: list[int] = []
        self.active_variants: list[tuple[str, int]] = []

    def location(self) -> tuple[str, ...]:
        return tuple(self.path)

    @contextmanager
    def guard(self) -> Iterator[None]:
        """Attach the current path to errors and wrap failures of user logic."""
        try:
            yield
        except TracingError as exc:
            exc.attach_path(self.path)
            raise
        except RecursionError as exc:
            raise RecursionLimitExceeded(self.config.max_depth, self.path) from exc
        except Exception as exc:
            raise self._failure(f"{type(exc).__name__}: {exc}", self.path) from exc

    @contextmanager
    def crumb(self, label: str) -> Iterator[None]:
        """Explore a field, element or variant."""
        self.path.append(label)
        try:
            with self.guard():
                yield
        finally:
            self.path.pop()

    @contextmanager
    def container(self, name: str) -> Iterator[None]:
        """Expand a named container on the active path."""
        if len(self.active) >= self.config.max_depth:
            raise RecursionLimitExceeded(self.config.max_depth, self.location() + (name,))
        self.active.append(name)
        self._anchors.append(len(self.path))
        try:
            with self.crumb(name):
                yield
        finally:
            self._anchors.pop()
            self.active.pop()

    @contextmanager
    def scope(self, *labels: str) -> Iterator[None]:
        """Descend through breadcrumbs without expanding a container.

        Writes of a finite value always terminate, so they are not bound by
        ``max_depth``.
        """
        with ExitStack() as stack:
            for label in labels:
                stack.enter_context(self.crumb(label))
            yield

    @contextmanager
    def within(self, name: str, *labels: str) -> Iterator[None]:
        """Expand a container, then descend through the given breadcrumbs."""
        with self.container(name), ExitStack() as stack:
            for label in labels:
                stack.enter_context(self.crumb(label))
            yield

    def is_active(self, name: str) -> bool:
        """Return whether a container is being expanded on the active path."""
        return name in self.active

    def unify(self, slot: Shape, shape: Shape) -> None:
        """Record an observation at the current position.

        A conflict inside a container is reported against that container,
        together with where it was first observed and where it was observed
        now.
        """
        try:
            unify(slot, shape, self.location())
        except InconsistentFormat as exc:
            if self.active:
                anchor = self._anchors[-1]
                name = self.active[-1]
                exc.location = tuple(self.path[anchor:])
                exc.sources = (
                    self.registry.source(name) or name,
                    format_path(self.path[:anchor]) or name,
                )
            raise

    def record(self, name: str, container: Shape) -> Shape:
        """Unify a container observation into the session registry."""
        return self.registry.record(name, container, format_path(self.path) or name)

    def record_variant(self, name: str, index: int, variant: str, payload: Shape) -> None:
        """Record the payload format of one enum variant."""
        entry = self.registry.get(name)
        if isinstance(entry, EnumFormat):
            clash = entry.get_variant(variant)
            if clash is not None and clash[0] != index:
                raise InconsistentFormat(
                    f"{variant} at index {clash[0]}", f"{variant} at index {index}", (name, variant)
                )
        self.record(name, EnumFormat({index: Named(variant, payload)}))

    @contextmanager
    def variant(self, name: str, index: int, variant: str) -> Iterator[None]:
        """Expand the payload of one enum variant."""
        self.active_variants.append((name, index))
        try:
            with self.within(name, variant):
                yield
        finally:
            self.active_variants.pop()

    def variant_index(self, name: str) -> int:
        """Pick the discriminant to explore for an enum occurrence.

        The enum under probe gets the probed index and any other enum gets
        variant 0. An enum nested inside itself gets the lowest variant that
        is not already being expanded on the active path, so that exploration
        reaches a base case.
        """
        if not self.is_active(name):
            if self.probe is not None and self.probe[0] == name:
                return self.probe[1]
            return 0
        busy = {index for enum, index in self.active_variants if enum == name}
        return next(index for index in count() if index not in busy)

    def capture_visitor(self, name: str, visitor: EnumVisitor) -> None:
        """Keep the first visitor seen for an enum so it can be probed later."""
        self.visitors.setdefault(name, visitor)

    def has_sample(self, name: str, enabled: bool) -> bool:
        """Return whether a recorded payload should replace exploring a container."""
        return enabled and name in self.samples and name in self.registry

    def sample(self, name: str) -> Any:
        return self.samples.value(name)
