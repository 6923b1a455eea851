"""Tracing of formats through the (de)serialization contract."""

from typed_formats.tracing.config import TracerConfig
from typed_formats.tracing.deserializer import TracingDeserializer
from typed_formats.tracing.serializer import TracingSerializer
from typed_formats.tracing.tracer import Tracer, trace
from typed_formats.tracing.value import Samples, Some, ValueDeserializer, VariantValue

__all__ = [
    "Samples",
    "Some",
    "Tracer",
    "TracerConfig",
    "TracingDeserializer",
    "TracingSerializer",
    "ValueDeserializer",
    "VariantValue",
    "trace",
]
