"""
Brace Text CLI - Command-line interface for brace text files.

Commands:
  bracetext tokens    - List the tokens of a file with their positions
  bracetext check     - Check that a file is well formed (no target type needed)
  bracetext to-json   - Decode a file into a type and print it as JSON
  bracetext from-json - Encode JSON as brace text through a type
  bracetext view      - Show the brace structure of a file as a tree
"""

from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path
from typing import IO, Any


def _open_input(path: str) -> IO:
    """Open a file for reading, or stdin for '-'."""
    if path == "-":
        return sys.stdin.buffer
    file_path = Path(path)
    if not file_path.is_file():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    return file_path.open("rb")


def _load_type(spec: str) -> Any:
    """Resolve a 'package.module:Class' reference."""
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        print(f"Error: --type must look like 'module:Class', got {spec!r}", file=sys.stderr)
        sys.exit(1)
    if "" not in sys.path:
        # Let types defined next to the data be found, as with `python -m`
        sys.path.insert(0, "")
    try:
        target = importlib.import_module(module_name)
    except ImportError as e:
        print(f"Error: Cannot import {module_name!r}: {e}", file=sys.stderr)
        sys.exit(1)
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            print(f"Error: {module_name!r} has no attribute {attr!r}", file=sys.stderr)
            sys.exit(1)
    return target


def _write_output(text: str, output: str | None, source: str) -> None:
    if not output:
        print(text, end="")
        return
    # Reject path traversal in output path
    if ".." in Path(output).parts:
        print("Error: Output path must not contain '..' (path traversal)", file=sys.stderr)
        sys.exit(1)
    Path(output).write_text(text, encoding="utf-8")
    print(f"Converted {source} -> {output}")


def cmd_tokens(args: argparse.Namespace) -> None:
    """Print one token per line: position, kind, and word text."""
    from bracetext.errors import BraceError
    from bracetext.token import Tokenizer, TokenKind

    source = _open_input(args.path)
    try:
        for token in Tokenizer(source):
            if token.kind is TokenKind.WORD:
                print(f"{token.line:>5d}:{token.column:<4d} WORD   {token.data!r}")
            else:
                print(f"{token.line:>5d}:{token.column:<4d} {token.kind.name:<6s} {token.kind.value}")
    except BraceError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if source is not sys.stdin.buffer:
            source.close()


def cmd_check(args: argparse.Namespace) -> None:
    """Check that every value in a file is balanced and lexically valid."""
    from bracetext.decoder import Decoder
    from bracetext.errors import BraceError, EndOfStream

    source = _open_input(args.path)
    decoder = Decoder(source)
    values = words = 0
    try:
        while True:
            try:
                words += decoder.skip()
            except EndOfStream:
                break
            values += 1
    except BraceError as e:
        print(f"FAIL: {args.path}: {e}")
        sys.exit(1)
    finally:
        if source is not sys.stdin.buffer:
            source.close()

    if decoder.tabular:
        print(f"OK: {args.path} is tabular brace text ({values} rows, {words} words)")
        print(f"    Columns: {' '.join(decoder.columns)}")
    else:
        print(f"OK: {args.path} is keyed brace text ({values} values, {words} words)")


def cmd_to_json(args: argparse.Namespace) -> None:
    """Decode every value of a file and print them as a JSON array."""
    import json

    from bracetext.converters import to_builtins
    from bracetext.decoder import Decoder
    from bracetext.errors import BraceError

    tp = _load_type(args.type)
    source = _open_input(args.path)
    try:
        data = [to_builtins(value, tp) for value in Decoder(source).iter_decode(tp)]
    except BraceError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if source is not sys.stdin.buffer:
            source.close()

    if args.first:
        if not data:
            print(f"Error: {args.path} holds no values", file=sys.stderr)
            sys.exit(1)
        result = data[0]
    else:
        result = data
    text = json.dumps(result, indent=args.indent, ensure_ascii=False) + "\n"
    _write_output(text, args.output, args.path)


def cmd_from_json(args: argparse.Namespace) -> None:
    """Encode a JSON document as brace text.

    With --tabular the JSON must be an array; each element becomes one row
    under a header naming the fields of --type.
    """
    import io
    import json

    from bracetext.converters import from_builtins
    from bracetext.encoder import Encoder
    from bracetext.errors import BraceError

    tp = _load_type(args.type)
    source = _open_input(args.path)
    try:
        raw = source.read()
    finally:
        if source is not sys.stdin.buffer:
            source.close()
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        sys.exit(1)

    out = io.StringIO()
    encoder = Encoder(out, indent=args.indent.encode().decode("unicode_escape"), tabular=args.tabular)
    try:
        if args.tabular:
            if not isinstance(data, list):
                print("Error: --tabular needs a JSON array of rows", file=sys.stderr)
                sys.exit(1)
            encoder.write_header(tp)
            for row in data:
                encoder.encode(from_builtins(row, tp), tp)
        else:
            encoder.encode(from_builtins(data, tp), tp)
    except (BraceError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    _write_output(out.getvalue(), args.output, args.path)


def cmd_view(args: argparse.Namespace) -> None:
    """Show the brace structure of a file as a tree."""
    try:
        from rich.console import Console

        from bracetext.view import render_tree
    except ImportError:
        print(
            "The tree view requires the 'rich' package.\n"
            "Install it with: pip install \"bracetext[view]\"",
            file=sys.stderr,
        )
        sys.exit(1)
    from bracetext.errors import BraceError

    source = _open_input(args.path)
    try:
        tree = render_tree(source, label=args.path)
    except BraceError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if source is not sys.stdin.buffer:
            source.close()
    Console().print(tree)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="bracetext",
        description="bracetext - brace-delimited typed text codec.",
    )
    from bracetext import __version__
    parser.add_argument("--version", action="version", version=f"bracetext {__version__}")
    sub = parser.add_subparsers(dest="command")

    # tokens
    p_tokens = sub.add_parser("tokens", help="List the tokens of a brace text file")
    p_tokens.add_argument("path", help="Path to brace text file ('-' for stdin)")

    # check
    p_check = sub.add_parser("check", help="Check that a brace text file is well formed")
    p_check.add_argument("path", help="Path to brace text file ('-' for stdin)")

    # to-json
    p_to_json = sub.add_parser("to-json", help="Decode brace text into a type and print JSON")
    p_to_json.add_argument("path", help="Path to brace text file ('-' for stdin)")
    p_to_json.add_argument("-t", "--type", required=True, help="Target type as module:Class")
    p_to_json.add_argument("--first", action="store_true", help="Print only the first value, not an array")
    p_to_json.add_argument("--indent", type=int, default=2, help="JSON indent (default: 2)")
    p_to_json.add_argument("-o", "--output", help="Output file path")

    # from-json
    p_from_json = sub.add_parser("from-json", help="Encode JSON as brace text through a type")
    p_from_json.add_argument("path", help="Path to JSON file ('-' for stdin)")
    p_from_json.add_argument("-t", "--type", required=True, help="Source type as module:Class")
    p_from_json.add_argument("--tabular", action="store_true", help="Write a header and one row per array element")
    p_from_json.add_argument("--indent", default="\\t", help="Indent unit for keyed output (default: tab)")
    p_from_json.add_argument("-o", "--output", help="Output file path")

    # view
    p_view = sub.add_parser("view", help="Show the brace structure of a file as a tree")
    p_view.add_argument("path", help="Path to brace text file ('-' for stdin)")

    args = parser.parse_args()

    if not args.command:
        print("bracetext - brace-delimited typed text codec\n")
        print("Usage:")
        print("  bracetext tokens people.btx")
        print("  bracetext check people.btx")
        print("  bracetext to-json people.btx -t models:Person -o people.json")
        print("  bracetext from-json people.json -t models:Person --tabular -o people.btx")
        print("  bracetext view people.btx")
        print()
        print("Run 'bracetext <command> --help' for details on any command.")
        print("Run 'bracetext --version' for version info.")
        sys.exit(0)

    commands = {
        "tokens": cmd_tokens,
        "check": cmd_check,
        "to-json": cmd_to_json,
        "from-json": cmd_from_json,
        "view": cmd_view,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
