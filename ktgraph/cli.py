"""Command-line tools for KT-SQEP knowledge graph files.

Usage:
    ktgraph check graph.xml
    ktgraph normalize graph.xml -o clean.xml
    ktgraph new empty.xml
    ktgraph --config editor.yaml --skip-unsupported check upstream.xml
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .codec.xml_codec import decode_with_report, encode
from .config import EditorConfig, load_config
from .errors import MalformedDocument
from .schema.graph import KnowledgeGraph


def _read(path: Path, config: EditorConfig):
    return decode_with_report(
        path.read_bytes(), skip_unsupported=config.skip_unsupported
    )


def cmd_check(args: argparse.Namespace, config: EditorConfig) -> int:
    result = _read(Path(args.file), config)
    graph = result.graph
    print(f"OK: {args.file}")
    print(result.summary())
    if args.verbose:
        for entity in graph.entities():
            print(f"  {entity.summary()}")
        for edge in graph.edges():
            print(f"  {edge.from_id} -[{edge.relation.value}]-> {edge.to_id}")
    return 0


def cmd_normalize(args: argparse.Namespace, config: EditorConfig) -> int:
    result = _read(Path(args.file), config)
    text = encode(result.graph)
    if args.output:
        Path(args.output).write_text(text, encoding="ascii")
        print(f"Saved: {args.output} ({result.graph.summary()})")
    else:
        print(text)
    return 0


def cmd_new(args: argparse.Namespace, config: EditorConfig) -> int:
    path = Path(args.file)
    if path.exists() and not args.force:
        print(f"Refusing to overwrite {path} (use --force)", file=sys.stderr)
        return 1
    path.write_text(encode(KnowledgeGraph()), encoding="ascii")
    print(f"Created: {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ktgraph", description=__doc__.splitlines()[0])
    parser.add_argument("--config", help="Path to editor config YAML")
    parser.add_argument("--env-file", help="Path to .env with KTGRAPH_* overrides")
    parser.add_argument(
        "--skip-unsupported",
        action="store_true",
        help="Skip ability/resource entities and unsupported relations instead of failing",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Decode a file and print a summary")
    check.add_argument("file")
    check.add_argument("-v", "--verbose", action="store_true", help="List entities and edges")
    check.set_defaults(func=cmd_check)

    normalize = sub.add_parser("normalize", help="Decode and re-encode a file")
    normalize.add_argument("file")
    normalize.add_argument("-o", "--output", help="Output path (default: stdout)")
    normalize.set_defaults(func=cmd_normalize)

    new = sub.add_parser("new", help="Write an empty document")
    new.add_argument("file")
    new.add_argument("--force", action="store_true", help="Overwrite an existing file")
    new.set_defaults(func=cmd_new)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config, args.env_file)
    if args.skip_unsupported:
        config = config.model_copy(update={"skip_unsupported": True})
    logging.basicConfig(level=config.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        return args.func(args, config)
    except MalformedDocument as e:
        print(f"FAIL: {args.file}: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
