"""Tracing driver: runs trace passes and reconciles them into one registry."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from itertools import count
from typing import Any, Iterator

from typed_formats.derive import reader_for, serialize_value
from typed_formats.errors import (
    MissingVariants,
    SerializationError,
    TracingError,
    UnknownVariantIndex,
)
from typed_formats.formats import EnumFormat, Shape, TypeName, Variable, resolve
from typed_formats.registry import Registry
from typed_formats.serde import DeserializeFn, EnumVisitor
from typed_formats.tracing.config import TracerConfig
from typed_formats.tracing.context import TraceContext
from typed_formats.tracing.deserializer import TracingDeserializer
from typed_formats.tracing.serializer import TracingSerializer
from typed_formats.tracing.value import Samples

logger = logging.getLogger(__name__)


def _exhausts(exc: UnknownVariantIndex, name: str | None, index: int) -> bool:
    """Return whether a failed pass means enum ``name`` has no variant ``index``.

    Only the occurrence driven by the pass itself counts: it is the one
    raising at the top of the pass, before any breadcrumb was pushed.
    """
    return name is not None and exc.enum_name == name and exc.index == index and not exc.path


class Tracer:
    """A tracing session.

    A session accumulates container formats from any number of traced values
    and types into one registry:

        tracer = Tracer()
        samples = Samples()
        tracer.trace_value(samples, Pair(1, "x"))
        tracer.trace_type(Color, samples)
        registry = tracer.registry()

    Any tracing error aborts the session: later calls raise ``TracingError``.
    """

    def __init__(self, config: TracerConfig | None = None) -> None:
        self.config = config or TracerConfig()
        self._registry = Registry()
        self._visitors: dict[str, EnumVisitor] = {}
        self._complete: set[str] = set()
        self._error: TracingError | None = None

    @contextmanager
    def _session(self) -> Iterator[None]:
        if self._error is not None:
            raise TracingError(f"Tracer cannot be reused after a failed trace: {self._error}")
        try:
            yield
        except TracingError as exc:
            self._error = exc
            raise

    def _context(self, samples: Samples, probe: tuple[str, int] | None = None) -> TraceContext:
        return TraceContext(self._registry, self.config, samples, self._visitors, probe)

    # ---- Serialization ----

    def trace_value(self, samples: Samples, value: Any, hint: Any = None) -> tuple[Shape, Any]:
        """Trace a value through its own serialization logic.

        Containers met on the way are recorded into the registry, and their
        payloads into ``samples`` so that later type traces can reuse them.

        Args:
            samples: Sample store filled by this trace.
            value: The value to trace.
            hint: Optional annotation used to pick the writer; by default the
                value's runtime type decides.

        Returns:
            The format of the value and its recorded form.
        """
        with self._session():
            context = TraceContext(
                self._registry, self.config, samples, self._visitors, failure=SerializationError
            )
            slot = Variable()
            serializer = TracingSerializer(context, slot)
            with context.guard():
                serialize_value(value, serializer, hint)
            logger.debug("Traced value of type %s as %r", type(value).__name__, slot)
            return slot.reduce(), serializer.value

    # ---- Deserialization ----

    def _pass(
        self,
        read: DeserializeFn,
        samples: Samples,
        slot: Shape,
        probe: tuple[str, int] | None = None,
    ) -> Any:
        context = self._context(samples, probe)
        with context.guard():
            return read(TracingDeserializer(context, slot))

    def trace_type_once(self, root: Any, samples: Samples | None = None) -> tuple[Shape, Any]:
        """Run a single pass over ``root`` without probing enum variants.

        Returns:
            The format of ``root`` and the synthetic value it built.
        """
        if samples is None:
            samples = Samples()
        with self._session():
            slot = Variable()
            value = self._pass(reader_for(root), samples, slot)
            return slot.reduce(), value

    def trace_type(self, root: Any, samples: Samples | None = None) -> tuple[Shape, list[Any]]:
        """Trace ``root`` until every enum reachable from it is complete.

        An enum root is traced once per variant: pass ``k`` forces
        discriminant ``k`` until the enum's own logic rejects an index. Enums
        found below the root are then probed through the visitor they were
        first seen with.

        Args:
            root: A type implementing the deserialization contract, or any
                annotation ``typed_formats.derive`` understands.
            samples: Values recorded by ``trace_value``, reused for
                containers that validate their input.

        Returns:
            The format of ``root`` and the synthetic values built: one per
            variant for an enum root, a single one otherwise.
        """
        if samples is None:
            samples = Samples()
        read = reader_for(root)
        with self._session():
            slot = Variable()
            values: list[Any] = []
            try:
                values.append(self._pass(read, samples, slot))
            except UnknownVariantIndex as exc:
                if not _exhausts(exc, self._root_enum(slot), 0):
                    raise
            name = self._root_enum(slot)
            if name is not None and values:
                for index in count(1):
                    logger.debug("Probing variant %d of root enum %s", index, name)
                    try:
                        values.append(self._pass(read, samples, Variable(), (name, index)))
                    except UnknownVariantIndex as exc:
                        if not _exhausts(exc, name, index):
                            raise
                        break
            if name is not None:
                self._mark_complete(name)
            self._probe_pending(samples)
            return slot.reduce(), values

    def trace_simple_type(self, root: Any) -> tuple[Shape, list[Any]]:
        """Trace a type that needs no samples."""
        return self.trace_type(root, Samples())

    def _root_enum(self, slot: Shape) -> str | None:
        resolved = resolve(slot)
        if isinstance(resolved, TypeName) and isinstance(self._registry.get(resolved.name), EnumFormat):
            return resolved.name
        return None

    def _mark_complete(self, name: str) -> None:
        self._complete.add(name)
        entry = self._registry.get(name)
        size = len(entry.variants) if isinstance(entry, EnumFormat) else 0
        logger.debug("Enum %s complete with %d variant(s)", name, size)

    def _pending(self) -> list[str]:
        return [name for name in self._visitors if name not in self._complete]

    def _probe_pending(self, samples: Samples) -> None:
        """Probe every enum seen during deserialization until none is left."""
        pending = self._pending()
        while pending:
            for name in pending:
                self._probe_enum(name, samples)
            pending = self._pending()

    def _probe_enum(self, name: str, samples: Samples) -> None:
        visitor = self._visitors[name]

        def read(deserializer: TracingDeserializer) -> Any:
            return deserializer.deserialize_enum(name, visitor)

        for index in count():
            logger.debug("Probing variant %d of enum %s", index, name)
            try:
                self._pass(read, samples, Variable(), (name, index))
            except UnknownVariantIndex as exc:
                if not _exhausts(exc, name, index):
                    raise
                break
        self._mark_complete(name)

    # ---- Finalization ----

    def registry(self) -> Registry:
        """Return the finalized registry of the session.

        Raises:
            MissingVariants: An enum was explored but never fully probed,
                e.g. after ``trace_type_once``.
            IncompleteRegistry: Unknown formats, dangling references or enum
                index gaps remain.
        """
        if self._error is not None:
            raise TracingError(f"Tracer cannot be reused after a failed trace: {self._error}")
        pending = self._pending()
        if pending:
            raise MissingVariants(pending[0])
        registry = self._registry.reduced()
        registry.validate()
        return registry


def trace(
    root: Any, config: TracerConfig | None = None, samples: Samples | None = None
) -> tuple[Shape, Registry]:
    """Trace ``root`` in a fresh session and return its format and registry."""
    tracer = Tracer(config)
    format, _ = tracer.trace_type(root, samples)
    return format, tracer.registry()
