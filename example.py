"""Example usage of the typed_formats library."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from typed_formats import (
    F64,
    U32,
    Samples,
    TaggedUnion,
    Tracer,
    dump_registry,
    load_registry,
    serializable,
)


# Describe the data with annotated classes
@serializable(style="newtype")
class Email:
    address: str

    def __post_init__(self) -> None:
        if "@" not in self.address:
            raise ValueError(f"Not an email address: {self.address!r}")


@serializable
class Person:
    id: U32
    name: str
    email: Email
    manager: Optional[Person]


class Event(TaggedUnion):
    pass


class Hired(Event):
    person: Person
    salary: F64


class Left(Event, style="newtype"):
    id: U32


class Reorg(Event, style="unit"):
    pass


tracer = Tracer()
samples = Samples()

# Email validates its input, so show the tracer one real value first
print("Tracing a sample value...")
fmt, value = tracer.trace_value(samples, Email("alice@example.com"))
print(f"  {fmt} recorded as {value!r}")

# Trace the event type; every variant is visited once
print("\nTracing Event...")
fmt, values = tracer.trace_type(Event, samples)
for v in values:
    print(f"  {v}")

registry = tracer.registry()
document = dump_registry(registry)

print("\nRegistry document:")
print(document)

# Store the document and read it back
path = Path("./formats.txt")
path.write_text(document)
assert load_registry(path.read_text()) == registry
print(f"Wrote {len(registry)} containers to {path}")
