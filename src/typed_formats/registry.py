"""Registry of container formats, keyed by container name."""

from __future__ import annotations

import logging
from typing import Iterator, Mapping

from typed_formats.errors import IncompleteRegistry, InconsistentFormat
from typed_formats.formats import CONTAINER_FORMATS, EnumFormat, Shape, unify

logger = logging.getLogger(__name__)


class Registry:
    """Name-keyed collection of container formats.

    Insertion order is preserved and drives iteration and document output.
    Equality compares the name to format mapping only, so registries built in
    a different order but describing the same containers are equal.
    Cross-references between entries are expressed with ``TypeName`` only.
    """

    def __init__(self, formats: Mapping[str, Shape] | None = None) -> None:
        self._formats: dict[str, Shape] = {}
        self._sources: dict[str, str] = {}
        if formats:
            for name, container in formats.items():
                self.register(name, container)

    def register(self, name: str, container: Shape, source: str | None = None) -> None:
        """Register a new container format."""
        if name in self._formats:
            raise ValueError(f"Container '{name}' is already defined")
        if not isinstance(container, CONTAINER_FORMATS):
            raise TypeError(f"'{name}' is not a container format: {container!r}")
        self._formats[name] = container
        self._sources[name] = source or name

    def record(self, name: str, container: Shape, source: str | None = None) -> Shape:
        """Unify an observation of a container with what is already known.

        Returns the registry's own entry, which shares its placeholders with
        the observation after unification.
        """
        existing = self._formats.get(name)
        if existing is None:
            self.register(name, container, source)
            return container
        try:
            unify(existing, container, (name,))
        except InconsistentFormat as exc:
            exc.sources = (self._sources[name], source or name)
            raise
        return existing

    def get(self, name: str) -> Shape | None:
        """Get a container format by name."""
        return self._formats.get(name)

    def get_or_raise(self, name: str) -> Shape:
        """Get a container format by name, raising if not found."""
        container = self._formats.get(name)
        if container is None:
            raise KeyError(f"Container '{name}' not found")
        return container

    def source(self, name: str) -> str | None:
        """Return the trace path where a container was first observed."""
        return self._sources.get(name)

    def list_names(self) -> list[str]:
        """List all registered container names, in insertion order."""
        return list(self._formats.keys())

    def items(self) -> Iterator[tuple[str, Shape]]:
        return iter(self._formats.items())

    def find_references(self, name: str) -> list[str]:
        """Find all containers whose format refers to ``name``."""
        return [
            other for other, container in self._formats.items()
            if name in container.type_names()
        ]

    def reduced(self) -> Registry:
        """Return a copy where all bound placeholders are resolved."""
        registry = Registry()
        for name, container in self._formats.items():
            registry.register(name, container.reduce(), self._sources[name])
        return registry

    def problems(self) -> list[IncompleteRegistry]:
        """Collect every reason why this registry cannot be finalized."""
        found: list[IncompleteRegistry] = []
        for name, container in self._formats.items():
            if container.contains_unknown():
                found.append(IncompleteRegistry(name, "the format contains unknown parts"))
            if isinstance(container, EnumFormat) and not container.is_contiguous():
                indices = ", ".join(str(i) for i in sorted(container.variants))
                found.append(IncompleteRegistry(name, f"variant indices are not contiguous ({indices})"))
            for ref in container.type_names():
                if ref not in self._formats:
                    found.append(IncompleteRegistry(name, f"reference to undefined container '{ref}'"))
        return found

    def is_complete(self) -> bool:
        """True iff no unknown parts, no dangling references and no enum gaps remain."""
        return not self.problems()

    def validate(self) -> None:
        """Raise the first IncompleteRegistry problem, if any."""
        problems = self.problems()
        if problems:
            raise problems[0]

    def merge(self, other: Registry) -> None:
        """Add the containers of ``other`` to this registry.

        A container present in both registries must have the same format in
        both. The merge is checked before anything is added, so a failing
        merge leaves this registry untouched.
        """
        for name, theirs in other.items():
            mine = self._formats.get(name)
            if mine is not None and mine != theirs:
                raise self._conflict(name, mine, theirs, other.source(name) or name)
        added = 0
        for name, theirs in other.items():
            if name not in self._formats:
                self.register(name, theirs, other.source(name))
                added += 1
        logger.debug("Merged %d new container(s) into registry of %d", added, len(self))

    def _conflict(self, name: str, mine: Shape, theirs: Shape, source: str) -> InconsistentFormat:
        sources = (self._sources[name], source)
        try:
            # Reduced copies: unification may grow enum tables in place.
            unify(mine.reduce(), theirs.reduce(), (name,))
        except InconsistentFormat as exc:
            exc.sources = sources
            return exc
        return InconsistentFormat(mine.reduce(), theirs.reduce(), (name,), sources)

    def __getitem__(self, name: str) -> Shape:
        return self._formats[name]

    def __contains__(self, name: str) -> bool:
        return name in self._formats

    def __iter__(self) -> Iterator[str]:
        return iter(self._formats)

    def __len__(self) -> int:
        return len(self._formats)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Registry):
            return NotImplemented
        return self._formats == other._formats

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        body = ", ".join(f"{name!r}: {container!r}" for name, container in self._formats.items())
        return f"Registry({{{body}}})"
