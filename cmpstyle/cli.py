#!/usr/bin/env python3
"""
cmpstyle CLI - inspect map and style files.

Usage:
    cmpstyle info-map nyc.cmp
    cmpstyle info-style style001.g24 --json
    cmpstyle column nyc.cmp 120 64
"""

import argparse
import json
import logging
import sys

from cmpstyle.errors import DecodeError


def cmd_info_map(args):
    """Show information about a map file."""
    from cmpstyle.map import load_map

    try:
        info = load_map(args.map_file).summary()
    except DecodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(info, indent=2))
        return 0

    print(f"Map version: {info['version']}")
    print(f"Style: {info['style']}  Sample: {info['sample']}")
    print(f"Blocks: {info['blocks']} (tallest column {info['max_column_height']})")
    print(f"Objects: {info['objects']}")
    print(f"Routes: {info['routes']}")
    print("Locations:")
    for kind, count in info["locations"].items():
        print(f"  - {kind}: {count}")
    print(f"\nZones: {len(info['zones'])}")
    for name in info["zones"]:
        print(f"  - {name}")
    return 0


def cmd_info_style(args):
    """Show information about a style file."""
    from cmpstyle.style import load_style

    try:
        info = load_style(args.style_file).summary()
    except DecodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(info, indent=2))
        return 0

    print(f"Style version: {info['version']}")
    print(f"Tiles: {info['tiles']} (atlas {info['atlas'][0]}x{info['atlas'][1]})")
    print(f"Animations: {info['animations']}")
    print(f"Palettes: {info['palettes']}")
    print(f"Objects: {info['objects']}")
    print(f"Cars: {info['cars']}")
    print(f"Sprites: {info['sprites']}")
    print("\nSections:")
    for name, section in info["sections"].items():
        size_kb = section["size"] / 1024
        print(f"  {name}: offset {section['offset']}, {size_kb:.1f} KB")
    return 0


def cmd_column(args):
    """Print the block stack of one map cell."""
    from cmpstyle.map import load_map

    if not (0 <= args.x < 256 and 0 <= args.y < 256):
        print("Error: x and y must be in 0..255", file=sys.stderr)
        return 1

    try:
        game_map = load_map(args.map_file)
    except DecodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    column = game_map.column(args.x, args.y)
    print(f"Column ({args.x}, {args.y}): {len(column)} blocks")
    for z, block in enumerate(column):
        print(
            f"  z={z}: {block.block_type.name.lower()}"
            f" slope={block.slope_type} lid={block.lid}@{block.lid_rotation}"
            f"{' flat' if block.is_flat else ''}"
        )
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="cmpstyle CLI - Inspect city map and style files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cmpstyle info-map nyc.cmp
  cmpstyle info-style style001.g24 --json
  cmpstyle column nyc.cmp 120 64
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log decoding progress")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # info-map
    map_parser = subparsers.add_parser("info-map", help="Show information about a map file")
    map_parser.add_argument("map_file", help="Path to .cmp file")
    map_parser.add_argument("--json", action="store_true", help="Print as JSON")
    map_parser.set_defaults(func=cmd_info_map)

    # info-style
    style_parser = subparsers.add_parser("info-style", help="Show information about a style file")
    style_parser.add_argument("style_file", help="Path to .g24 file")
    style_parser.add_argument("--json", action="store_true", help="Print as JSON")
    style_parser.set_defaults(func=cmd_info_style)

    # column
    column_parser = subparsers.add_parser("column", help="Show the blocks of one map cell")
    column_parser.add_argument("map_file", help="Path to .cmp file")
    column_parser.add_argument("x", type=int, help="Cell x (0-255)")
    column_parser.add_argument("y", type=int, help="Cell y (0-255)")
    column_parser.set_defaults(func=cmd_column)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
