#!/usr/bin/env python3
# PYTHON_ARGCOMPLETE_OK
"""
Command-line interface for Grocery Ledger
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import argcomplete

from . import export
from ._version import __version__
from .config import Config
from .ledger import Entry, InvalidEntryError, InvalidQuantityError, Ledger, LedgerError, Mode, parse_quantity
from .storage import JsonStore, decode_entries


def open_ledger(data_dir: Path, key: str = "tableData") -> Ledger:
    """Load the stored ledger from a data directory."""
    return Ledger.load(JsonStore(data_dir), key=key)


def format_table(entries: list[Entry]) -> str:
    """Format entries as an aligned text table with blank Used/Bought columns."""
    rows = [export.COLUMNS] + export.table_rows(entries)
    widths = [max(len(row[i]) for row in rows) for i in range(len(export.COLUMNS))]
    widths[3] = widths[4] = max(widths[3], 10)

    lines = []
    for n, row in enumerate(rows):
        cells = [
            cell.rjust(widths[i]) if i == 2 else cell.ljust(widths[i])
            for i, cell in enumerate(row)
        ]
        lines.append(" | ".join(cells).rstrip())
        if n == 0:
            lines.append("-+-".join("-" * w for w in widths))
    return "\n".join(lines)


def add_command(ledger: Ledger, item: str, brand: str, available: str, mode: str = "add") -> int:
    """Add an entry, or merge it into an existing one with the same item and brand."""
    try:
        quantity = parse_quantity(available)
        existed = ledger.find(item, brand) is not None
        stored = ledger.add_or_merge(Entry(item=item, brand=brand, available=quantity), mode)
    except (InvalidQuantityError, InvalidEntryError, ValueError) as e:
        # ValueError also covers an unknown mode
        print(f"❌ {e}", file=sys.stderr)
        return 1

    label = f"{stored.item} ({stored.brand})" if stored.brand else stored.item
    if not existed:
        print(f"✅ Added {label}: {stored.available}")
    elif Mode.parse(mode) is Mode.ADD:
        print(f"✏️  Updated {label}: {stored.available} ({quantity:+d})")
    else:
        print(f"✏️  Set {label} to {stored.available}")
    return 0


def list_command(ledger: Ledger, as_json: bool = False) -> int:
    """Print the ledger sorted by item and brand."""
    entries = list(ledger.sorted_view())
    if as_json:
        print(json.dumps([e.to_dict() for e in entries], indent=2, ensure_ascii=False))
        return 0

    if not entries:
        print("No items yet. Add one with: grocery-ledger add ITEM BRAND AVAILABLE")
        return 0
    print(format_table(entries))
    return 0


def clear_command(ledger: Ledger, yes: bool = False) -> int:
    """Remove all entries and the stored data."""
    if not yes and len(ledger):
        print(f"⚠️  This removes all {len(ledger)} items")
        response = input("Continue? [y/N] ")
        if response.lower() != 'y':
            print("Aborted.")
            return 1
    ledger.clear()
    print("🗑️  Cleared all items")
    return 0


def export_command(
    ledger: Ledger,
    output: Path | None = None,
    output_format: str = "pdf",
    title: str = export.DEFAULT_TITLE,
    filename: str | None = None,
) -> int:
    """Export the sorted list to a printable document."""
    if filename and Path(filename).suffix.lower() != f".{output_format.lower()}":
        filename = None
    try:
        exporter = export.get_exporter(output_format, title=title, filename=filename)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    written = export.export_document(ledger, exporter, output)
    if written is None:
        print("❌ Export failed (see log for details)", file=sys.stderr)
        return 1
    print(f"📄 Exported {len(ledger)} items to {written}")
    return 0


def import_command(ledger: Ledger, source: Path) -> int:
    """Replace the whole list with entries from a JSON file.

    The file holds the same array format as the stored data.
    """
    source = Path(source)
    if not source.exists():
        print(f"❌ Error: {source} not found!", file=sys.stderr)
        return 1
    try:
        with open(source, encoding="utf-8") as f:
            entries = decode_entries(json.load(f))
    except (json.JSONDecodeError, LedgerError) as e:
        print(f"❌ Could not import {source}: {e}", file=sys.stderr)
        return 1

    ledger.replace_all(entries)
    print(f"✅ Imported {len(ledger)} items from {source}")
    return 0


def serve_command(ledger: Ledger, host: str = "127.0.0.1", port: int = 8000,
                  title: str = export.DEFAULT_TITLE, mode: str = "add") -> int:
    """Start the web form on a local server."""
    try:
        import uvicorn

        from .api_server import create_app
    except ImportError as e:
        print(f"❌ Missing required package: {e}")
        print("\nInstall web dependencies:")
        print('  pip install "grocery-ledger[web]"')
        return 1

    try:
        app = create_app(ledger, title=title, default_mode=mode)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    print(f"🌐 Starting web server at http://{host}:{port}")
    print(f"🛒 {len(ledger)} items loaded")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run(app, host=host, port=port, log_level="info")
    except KeyboardInterrupt:
        print("\n\n👋 Server stopped")
    return 0


def config_command(config: Config, show: bool = False, show_path: bool = False) -> int:
    """Show configuration information."""
    if show_path:
        if config.path:
            print(config.path)
        else:
            print("No configuration file found")
        return 0

    if config.path:
        print(f"# Configuration loaded from: {config.path}")
    else:
        print("# No configuration file found, showing defaults")
    print()
    print(json.dumps(config.data, indent=2))
    return 0


def build_parser(config: Config) -> argparse.ArgumentParser:
    parser_cli = argparse.ArgumentParser(
        prog="grocery-ledger",
        description="Grocery Ledger - Track groceries on hand and print a shopping checklist",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Add 2 cartons of milk, then 3 more
  grocery-ledger add Milk Tine 2
  grocery-ledger add Milk Tine 3

  # Set the count instead of adding to it
  grocery-ledger add Milk Tine 4 --mode replace

  # Show the list
  grocery-ledger list

  # Export a printable PDF
  grocery-ledger export -o grocery-list.pdf

  # Start the web form
  grocery-ledger serve
        """
    )
    parser_cli.add_argument(
        '--version', '-V',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser_cli.add_argument('--data-dir', type=Path, default=None,
                            help=f'Directory for stored data (default: {config.data_dir})')
    parser_cli.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')

    subparsers = parser_cli.add_subparsers(dest='command', help='Command to run')

    add_parser = subparsers.add_parser('add', help='Add an item or update its quantity')
    add_parser.add_argument('item', help='Item name')
    add_parser.add_argument('brand', help='Brand name (use "" for none)')
    add_parser.add_argument('available', help='Quantity available (whole number)')
    add_parser.add_argument('--mode', '-m', choices=['add', 'replace', 'update'], default=None,
                            help=f'add to or replace an existing quantity (default: {config.mode})')

    list_parser = subparsers.add_parser('list', help='Show items sorted by name and brand')
    list_parser.add_argument('--json', '-j', action='store_true', help='Output as JSON')

    clear_parser = subparsers.add_parser('clear', help='Remove all items')
    clear_parser.add_argument('--yes', '-y', action='store_true', help='Do not ask for confirmation')

    export_parser = subparsers.add_parser('export', help='Export the list to a printable document')
    export_parser.add_argument('--output', '-o', type=Path, help='Output file (default: grocery-list.pdf)')
    export_parser.add_argument('--format', '-f', type=str, choices=sorted(export.EXPORTERS), default=None,
                               help=f'Output format (default: {config.export_format})')
    export_parser.add_argument('--title', type=str, default=None,
                               help=f'Document title (default: {config.export_title})')

    import_parser = subparsers.add_parser('import', help='Replace the list with entries from a JSON file')
    import_parser.add_argument('file', type=Path, help='JSON array of {"item", "brand", "available"} objects')

    config_parser = subparsers.add_parser('config', help='Show configuration')
    config_parser.add_argument('--show', action='store_true', help='Show merged configuration')
    config_parser.add_argument('--path', action='store_true', help='Show config file path')

    serve_parser = subparsers.add_parser('serve', help='Start the web form')
    serve_parser.add_argument('--port', '-p', type=int, default=None, help=f'Port number (default: {config.serve_port})')
    serve_parser.add_argument('--host', type=str, default=None, help=f'Host to bind to (default: {config.serve_host})')

    return parser_cli


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    config = Config()
    parser_cli = build_parser(config)

    # Enable shell tab completion
    argcomplete.autocomplete(parser_cli)

    args = parser_cli.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == 'config':
        return config_command(config, show=args.show, show_path=args.path)
    if args.command is None:
        parser_cli.print_help()
        return 1

    data_dir = args.data_dir if args.data_dir is not None else config.data_dir
    ledger = open_ledger(data_dir, key=config.storage_key)

    if args.command == 'add':
        mode = args.mode if args.mode is not None else config.mode
        return add_command(ledger, args.item, args.brand, args.available, mode)
    elif args.command == 'list':
        return list_command(ledger, as_json=args.json)
    elif args.command == 'clear':
        return clear_command(ledger, yes=args.yes)
    elif args.command == 'export':
        output_format = args.format if args.format else config.export_format
        title = args.title if args.title else config.export_title
        return export_command(ledger, args.output, output_format, title, config.export_filename)
    elif args.command == 'import':
        return import_command(ledger, args.file)
    elif args.command == 'serve':
        port = args.port if args.port is not None else config.serve_port
        host = args.host if args.host is not None else config.serve_host
        return serve_command(ledger, host, port, title=config.export_title, mode=config.mode)
    else:
        parser_cli.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
