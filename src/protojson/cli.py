from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from .errors import EncodeError
from .options import MarshalOptions
from .reflect.message import Message
from .schema import load_schema
from .settings import settings


def _load_registry(path: str):
    p = Path(path)
    if not p.exists():
        print(f"Schema not found: {p}", file=sys.stderr)
        return None
    try:
        return load_schema(p).build()
    except (ValidationError, ValueError) as e:
        print(f"Invalid schema {p}: {e}", file=sys.stderr)
        return None


def cmd_encode(args: argparse.Namespace) -> int:
    registry = _load_registry(args.schema)
    if registry is None:
        return 2
    desc = registry.find_message_by_name(args.type)
    if desc is None:
        print(f"Unknown message type: {args.type}", file=sys.stderr)
        return 2
    try:
        raw = Path(args.input).read_text() if args.input and args.input != "-" else sys.stdin.read()
        data = json.loads(raw) if raw.strip() else {}
        message = Message.from_dict(desc, data, resolver=registry)
    except (OSError, ValueError, TypeError, KeyError) as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 2

    options = MarshalOptions(
        allow_partial=args.allow_partial,
        use_proto_names=args.use_proto_names,
        use_enum_numbers=args.use_enum_numbers,
        emit_unpopulated=args.emit_unpopulated,
        indent=args.indent,
        resolver=registry,
    )
    result = options.marshal_result(message)
    # Partial output is still printed when required fields are missing.
    sys.stdout.write(result.data.decode("utf-8") + "\n")
    if result.error is not None:
        print(f"Missing required fields: {', '.join(result.error.missing)}", file=sys.stderr)
        return 1
    return 0


def cmd_describe(args: argparse.Namespace) -> int:
    registry = _load_registry(args.schema)
    if registry is None:
        return 2
    doc = load_schema(args.schema)
    names = [args.type] if args.type else [doc.qualify(m.name) for m in doc.messages]
    for name in names:
        desc = registry.find_message_by_name(name)
        if desc is None:
            print(f"Unknown message type: {name}", file=sys.stderr)
            return 2
        print(f"{desc.full_name} ({desc.syntax.value})")
        for fd in desc.fields:
            label = "map" if fd.is_map else fd.cardinality.name.lower()
            extra = f" oneof={fd.containing_oneof.name}" if fd.containing_oneof else ""
            print(f"  {fd.number}: {fd.name} [{fd.json_name}] {label} {fd.kind.name.lower()}{extra}")
        for fd in registry.extensions_of(desc.full_name):
            print(f"  {fd.number}: [{fd.full_name}] extension {fd.kind.name.lower()}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="protojson",
        description="Encode protobuf-style messages described by a JSON schema document",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    p_enc = sub.add_parser("encode", help="Encode a message given as plain JSON field values")
    p_enc.add_argument("--schema", required=True, help="Schema document (JSON)")
    p_enc.add_argument("--type", required=True, help="Full name of the message type")
    p_enc.add_argument("--input", help="Field values file (default: stdin)")
    p_enc.add_argument("--indent", default="", help="Indent unit, spaces or tabs (default: compact)")
    p_enc.add_argument("--use-proto-names", action="store_true")
    p_enc.add_argument("--use-enum-numbers", action="store_true")
    p_enc.add_argument("--emit-unpopulated", action="store_true")
    p_enc.add_argument("--allow-partial", action="store_true")
    p_enc.set_defaults(func=cmd_encode)

    p_desc = sub.add_parser("describe", help="List message types and their fields")
    p_desc.add_argument("--schema", required=True, help="Schema document (JSON)")
    p_desc.add_argument("--type", help="Only describe this message type")
    p_desc.set_defaults(func=cmd_describe)
    return p


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=settings.protojson_log_level.upper())
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except ValidationError as e:
        print(f"Invalid options: {e}", file=sys.stderr)
        return 2
    except EncodeError as e:
        print(f"Encoding failed: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
