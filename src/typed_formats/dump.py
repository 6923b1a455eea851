"""Tool for writing traced registries as documents."""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import Any

from typed_formats.errors import TracingError
from typed_formats.formats import (
    EnumFormat,
    MapFormat,
    Named,
    NewTypeStruct,
    NewTypeVariant,
    OptionFormat,
    Primitive,
    Seq,
    Shape,
    Struct,
    StructVariant,
    TupleArray,
    TupleFormat,
    TupleStruct,
    TupleVariant,
    TypeName,
    UnitStruct,
    UnitVariant,
    Variable,
    resolve,
)
from typed_formats.parsing import RegistryParser, quote
from typed_formats.registry import Registry
from typed_formats.tracing import Samples, Tracer

logger = logging.getLogger(__name__)

INDENT = "  "


def format_shape(shape: Shape) -> str:
    """Render a format on a single line, e.g. ``OPTION(TYPENAME(Node))``."""
    shape = resolve(shape)
    if isinstance(shape, Variable):
        return "UNKNOWN"
    if isinstance(shape, Primitive):
        return shape.kind.value
    if isinstance(shape, TypeName):
        return f"TYPENAME({quote(shape.name)})"
    if isinstance(shape, OptionFormat):
        return f"OPTION({format_shape(shape.format)})"
    if isinstance(shape, Seq):
        return f"SEQ({format_shape(shape.format)})"
    if isinstance(shape, MapFormat):
        return f"MAP({format_shape(shape.key)}, {format_shape(shape.value)})"
    if isinstance(shape, TupleFormat):
        return f"TUPLE({_format_list(shape.formats)})"
    if isinstance(shape, TupleArray):
        return f"TUPLEARRAY({format_shape(shape.content)}, {shape.size})"
    raise TypeError(f"Not a format: {shape!r}")


def _format_list(formats: tuple[Shape, ...]) -> str:
    return ", ".join(format_shape(f) for f in formats)


def _format_fields(fields: tuple[Named, ...], depth: int) -> list[str]:
    if not fields:
        return ["{}"]
    lines = ["{"]
    for field in fields:
        lines.append(f"{INDENT * (depth + 1)}{quote(field.name)}: {format_shape(field.value)},")
    lines.append(f"{INDENT * depth}}}")
    return lines


def _format_variant(variant: Shape, depth: int) -> list[str]:
    variant = resolve(variant)
    if isinstance(variant, Variable):
        return ["UNKNOWN"]
    if isinstance(variant, UnitVariant):
        return ["UNIT"]
    if isinstance(variant, NewTypeVariant):
        return [f"NEWTYPE({format_shape(variant.format)})"]
    if isinstance(variant, TupleVariant):
        return [f"TUPLE({_format_list(variant.formats)})"]
    if isinstance(variant, StructVariant):
        lines = _format_fields(variant.fields, depth)
        return [f"STRUCT {lines[0]}"] + lines[1:]
    raise TypeError(f"Not a variant format: {variant!r}")


def format_container(container: Shape) -> list[str]:
    """Render a container format as document lines (without the name)."""
    if isinstance(container, UnitStruct):
        return ["UNITSTRUCT"]
    if isinstance(container, NewTypeStruct):
        return [f"NEWTYPESTRUCT({format_shape(container.format)})"]
    if isinstance(container, TupleStruct):
        return [f"TUPLESTRUCT({_format_list(container.formats)})"]
    if isinstance(container, Struct):
        lines = _format_fields(container.fields, 0)
        return [f"STRUCT {lines[0]}"] + lines[1:]
    if isinstance(container, EnumFormat):
        if not container.variants:
            return ["ENUM {}"]
        lines = ["ENUM {"]
        for index in sorted(container.variants):
            variant = container.variants[index]
            body = _format_variant(variant.value, 1)
            body[-1] += ","
            lines.append(f"{INDENT}{index}: {quote(variant.name)} {body[0]}")
            lines.extend(body[1:])
        lines.append("}")
        return lines
    raise TypeError(f"Not a container format: {container!r}")


def dump_registry(registry: Registry) -> str:
    """Write a registry as a document, one entry per container in insertion order."""
    out = []
    for name, container in registry.items():
        lines = format_container(container)
        out.append(f"{quote(name)}: {lines[0]}")
        out.extend(lines[1:])
    return "".join(f"{line}\n" for line in out)


def load_registry(text: str) -> Registry:
    """Read a document written by ``dump_registry``."""
    return RegistryParser().parse(text)


def load_root(ref: str) -> Any:
    """Import a root type given as ``module:attribute``."""
    module_name, sep, attribute = ref.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Expected 'module:attribute', got '{ref}'")
    target: Any = importlib.import_module(module_name)
    for part in attribute.split("."):
        target = getattr(target, part)
    return target


def trace_roots(refs: list[str]) -> Registry:
    """Trace every root into one session and return the finalized registry."""
    tracer = Tracer()
    samples = Samples()
    for ref in refs:
        root = load_root(ref)
        logger.info("Tracing %s", ref)
        tracer.trace_type(root, samples)
    return tracer.registry()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Trace types and print their registry document"
    )
    parser.add_argument(
        "roots",
        nargs="+",
        metavar="module:Type",
        help="Root types to trace, e.g. mypackage.models:Order",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Write the document to this file instead of stdout",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log tracing passes and enum probes",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        registry = trace_roots(args.roots)
    except (ImportError, AttributeError, ValueError) as e:
        print(f"Error loading root type: {e}", file=sys.stderr)
        return 1
    except TracingError as e:
        print(f"Error tracing: {e}", file=sys.stderr)
        return 1

    document = dump_registry(registry)
    if args.output is None:
        sys.stdout.write(document)
    else:
        args.output.write_text(document)
        logger.info("Wrote %d container(s) to %s", len(registry), args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
