from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from protoc_render.config import GeneratorConfig, InOutConfig
from protoc_render.errors import GeneratorError
from protoc_render.generator import generate


def _in_outs(pairs: Optional[List[List[str]]], overlays: List[str]) -> List[InOutConfig]:
    return [InOutConfig(input=i, output=o, overlays=overlays) for i, o in (pairs or [])]


def run(args: argparse.Namespace) -> int:
    config = GeneratorConfig(
        descriptor_set_path=args.descriptor_set,
        templates=_in_outs(args.template, args.overlay),
        scripts=_in_outs(args.script, args.overlay),
    )
    if not config.templates and not config.scripts:
        print("Nothing to do: pass at least one --template or --script")
        return 0

    try:
        written = generate(config)
    except GeneratorError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        cause = e.__cause__
        while cause is not None:
            print(f"  caused by: {cause}", file=sys.stderr)
            cause = cause.__cause__
        return 1

    for path in written:
        print(f"  Generated: {path.as_posix()}")
    print(f"Done! {len(written)} file(s) written")
    return 0


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="Render source code from a protobuf descriptor set",
    )
    parser.add_argument(
        "--descriptor-set",
        required=True,
        help="Path to a FileDescriptorSet written by protoc --descriptor_set_out",
    )
    parser.add_argument(
        "--template",
        nargs=2,
        action="append",
        metavar=("IN", "OUT"),
        help="Template root directory and output directory (repeatable)",
    )
    parser.add_argument(
        "--script",
        nargs=2,
        action="append",
        metavar=("IN", "OUT"),
        help="Script root directory and output directory (repeatable)",
    )
    parser.add_argument(
        "--overlay",
        action="append",
        default=[],
        help="Extra overlay file (JSON or YAML) applied to every renderer (repeatable)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(run(args))


if __name__ == "__main__":
    main()
