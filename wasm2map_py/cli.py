#!/usr/bin/env python3
"""
wasm2map - DWARF to source map converter for WebAssembly

Command-line interface for generating a Source Map v3 file from the DWARF
debug information of a WebAssembly module, and for pointing the module at it.

Usage:
    wasm2map <wasm-file> [-m MAP_PATH] [-p -b BASE_URL] [--bundle-sources]
    wasm2map -h | --help
    wasm2map --version

Arguments:
    wasm-file          Path to the WebAssembly module

Options:
    -m --map           Output path of the source map (default: <wasm-file>.map)
    -p --patch         Add or replace the sourceMappingURL section
    -b --base-url      Base URL the source map is served from
    --bundle-sources   Embed the source files in the map
    --dwo-parent       Skeleton module, when the input holds split DWARF
    --sup-file         Supplementary DWARF module
    --mmap             Memory-map the input files
    --dump-mappings    Print the decoded mappings
    -h --help          Show this help message
    --version          Show version
"""

import sys
import argparse
from pathlib import Path
from typing import Optional

from . import __version__
from .config import Config
from .errors import Wasm2MapError
from .executor.wasm2map import Wasm2Map
from .sourcemap.decode import format_mappings


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='wasm2map',
        description="wasm2map - Generate a source map from WebAssembly DWARF debug info",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('wasm', help='WebAssembly module with DWARF debug info')
    parser.add_argument('-m', '--map', dest='map_path', type=str,
                        help='Output path of the source map (default: <wasm>.map)')
    parser.add_argument('-p', '--patch', action='store_true',
                        help='Add or replace the sourceMappingURL section (requires -b)')
    parser.add_argument('-b', '--base-url', type=str,
                        help='Base URL the source map is served from (requires -p)')
    parser.add_argument('--bundle-sources', action='store_true', default=None,
                        help='Embed source file contents in the map')
    parser.add_argument('--dwo-parent', type=str, help='Skeleton module for split DWARF input')
    parser.add_argument('--sup-file', type=str, help='Supplementary DWARF module')
    parser.add_argument('--mmap', action='store_true', default=None, help='Memory-map input files')
    parser.add_argument('--dump-mappings', action='store_true', default=None,
                        help='Print the decoded mappings')
    parser.add_argument('--version', action='version', version=f'wasm2map {__version__}')
    parser.add_argument('--config', type=str, help='Path to config.json')
    return parser


def default_map_path(wasm_path: str, suffix: str) -> Path:
    """Source map path next to the module, e.g. ``app.wasm.map``."""
    path = Path(wasm_path)
    return path.with_name(path.name + suffix)


def source_map_url(base_url: str, map_path: Path) -> str:
    """URL the patched module points at."""
    return f"{base_url.rstrip('/')}/{map_path.name}"


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Let command-line flags take precedence over the config file."""
    if args.bundle_sources is not None:
        config.bundle_sources = args.bundle_sources
    if args.mmap is not None:
        config.use_mmap = args.mmap
    if args.dump_mappings is not None:
        config.dump_mappings = args.dump_mappings
    return config


def run(args: argparse.Namespace, config: Config) -> None:
    """
    Generate the source map and optionally patch the module.

    Args:
        args: Parsed command-line arguments
        config: Configuration
    """
    map_path = Path(args.map_path) if args.map_path else default_map_path(args.wasm, config.source_map_suffix)

    print("Initializing WebAssembly file...")
    session = Wasm2Map.load(
        args.wasm,
        dwo_parent=args.dwo_parent,
        sup_file=args.sup_file,
        use_mmap=config.use_mmap,
        section_name=config.section_name,
    )
    print("Detected WebAssembly (WASM) format")
    print(f"Code section offset: 0x{session.offset:x}")

    print("Generating source map...")
    artifact = session.build_artifact(config.bundle_sources, Path(args.wasm).name)
    print(f"Sources: {len(artifact.sources)}")
    artifact.save(map_path)
    print(f"Source map written to {map_path}")

    if config.dump_mappings:
        for line in format_mappings(artifact.to_dict()):
            print(line)

    if args.patch:
        url = source_map_url(args.base_url, map_path)
        print(f"Patching {config.section_name} section: {url}")
        session.patch(url)

    print("Done!")


def main(argv: Optional[list] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.patch and not args.base_url:
        print("ERROR: --patch requires --base-url")
        sys.exit(1)

    if args.base_url and not args.patch:
        print("ERROR: --base-url requires --patch")
        sys.exit(1)

    if not Path(args.wasm).is_file():
        print(f"ERROR: WebAssembly file not found: {args.wasm}")
        sys.exit(1)

    try:
        config_path = Path(args.config) if args.config else None
        config = apply_overrides(Config.load(config_path), args)
        run(args, config)
    except Wasm2MapError as e:
        print(f"ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
