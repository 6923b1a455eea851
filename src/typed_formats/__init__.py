"""Typed Formats - Extract serialization formats of Python types by tracing."""

from typed_formats.derive import (
    F32,
    F64,
    I8,
    I16,
    I32,
    I64,
    I128,
    U8,
    U16,
    U32,
    U64,
    U128,
    Char,
    Fixed,
    TaggedUnion,
    serializable,
)
from typed_formats.dump import dump_registry, load_registry
from typed_formats.errors import (
    DeserializationError,
    IncompleteRegistry,
    InconsistentFormat,
    MissingVariants,
    RecursionLimitExceeded,
    SerializationError,
    TracingError,
    UnknownVariantIndex,
    UnsupportedType,
)
from typed_formats.formats import (
    EnumFormat,
    MapFormat,
    Named,
    NewTypeStruct,
    NewTypeVariant,
    OptionFormat,
    Primitive,
    PrimitiveKind,
    Seq,
    Struct,
    StructVariant,
    TupleArray,
    TupleFormat,
    TupleStruct,
    TupleVariant,
    TypeName,
    UnitStruct,
    UnitVariant,
)
from typed_formats.parsing import RegistryParser
from typed_formats.registry import Registry
from typed_formats.serde import Deserializer, Serializer, VariantAccess
from typed_formats.tracing import Samples, Tracer, TracerConfig, trace

__all__ = [
    # Main API
    "Tracer",
    "TracerConfig",
    "Samples",
    "trace",
    "Registry",
    "dump_registry",
    "load_registry",
    "RegistryParser",
    # Contract
    "Serializer",
    "Deserializer",
    "VariantAccess",
    # Derive
    "serializable",
    "TaggedUnion",
    "Fixed",
    "U8",
    "U16",
    "U32",
    "U64",
    "U128",
    "I8",
    "I16",
    "I32",
    "I64",
    "I128",
    "F32",
    "F64",
    "Char",
    # Formats
    "PrimitiveKind",
    "Primitive",
    "TypeName",
    "OptionFormat",
    "Seq",
    "MapFormat",
    "TupleFormat",
    "TupleArray",
    "Named",
    "UnitStruct",
    "NewTypeStruct",
    "TupleStruct",
    "Struct",
    "EnumFormat",
    "UnitVariant",
    "NewTypeVariant",
    "TupleVariant",
    "StructVariant",
    # Errors
    "TracingError",
    "UnsupportedType",
    "UnknownVariantIndex",
    "InconsistentFormat",
    "RecursionLimitExceeded",
    "IncompleteRegistry",
    "MissingVariants",
    "SerializationError",
    "DeserializationError",
]

__version__ = "0.1.0"
