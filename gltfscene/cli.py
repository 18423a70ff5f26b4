"""Command line interface: summarise a glTF or GLB file."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from .errors import GltfError
from .glb_format import FormatOptions
from .parser import load
from .types import Model

_COUNTED = (
    "buffers",
    "buffer_views",
    "accessors",
    "cameras",
    "images",
    "materials",
    "meshes",
    "nodes",
    "samplers",
    "scenes",
    "skins",
    "textures",
    "animations",
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gltfscene")
    parser.add_argument("input", help="Path to a .gltf or .glb file")
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    parser.add_argument("--strict-length", action="store_true", help="Reject GLB files whose header length is wrong")
    parser.add_argument("--max-bytes", type=int, default=None, help="Refuse documents or chunks larger than this")
    parser.add_argument("--check-resources", action="store_true", help="Also open every buffer and image")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def summarize(model: Model) -> dict:
    asset = model.asset
    return {
        "asset": {
            "version": asset.version,
            "generator": asset.generator,
            "copyright": asset.copyright,
            "min_version": asset.min_version,
        },
        "counts": {name: len(getattr(model, name)) for name in _COUNTED},
        "scene": model.scene,
        "extensions_used": list(model.extensions_used),
        "extensions_required": list(model.extensions_required),
    }


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    options = FormatOptions(strict_length=bool(args.strict_length), max_bytes=args.max_bytes)
    try:
        document = load(args.input, options)
        if args.check_resources:
            opener = document.opener()
            for i in range(len(document.model.buffers)):
                opener.open_buffer(i)
            for i in range(len(document.model.images)):
                opener.open_image(i)
    except GltfError as exc:
        print(f"{args.input}: {exc}", file=sys.stderr)
        return 1

    summary = summarize(document.model)
    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        asset = summary["asset"]
        print(f"version: {asset['version']}")
        for key in ("generator", "copyright", "min_version"):
            if asset[key] is not None:
                print(f"{key}: {asset[key]}")
        for name, count in summary["counts"].items():
            if count:
                print(f"{name}: {count}")
        if summary["scene"] is not None:
            print(f"scene: {summary['scene']}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
