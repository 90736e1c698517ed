#!/usr/bin/env python3
"""
Compile DocType metadata into UI source files.
Usage:
    python scripts/generate_ui.py contract "Sales Order"
    python scripts/generate_ui.py generate "Sales Order" --out build/ui.zip
    python scripts/generate_ui.py sync "Sales Order" --dest ../frontend/src [--dry-run]

The metadata source comes from METADATA_DIR or FRAPPE_URL / FRAPPE_API_KEY /
FRAPPE_API_SECRET (environment or .env), unless --metadata-dir is given.
"""
import argparse
import base64
import json
import sys
from pathlib import Path

from doctype_ui.core.config import settings
from doctype_ui.core.engine import CompilerEngine
from doctype_ui.core.errors import UICompilerError
from doctype_ui.core.logging import configure_logging
from doctype_ui.core.workflow import MergeStatus
from doctype_ui.metadata import FileMetadataSource, metadata_source_from_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compile DocType metadata into UI source files")
    parser.add_argument("--metadata-dir", help="Directory of JSON/YAML schema dumps")
    parser.add_argument("--preset", default=settings.default_style_preset, choices=["plain", "dense", "spacious"])
    parser.add_argument("--language", default=settings.target_language, choices=["js", "ts"])
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("contract", help="Print the UI contract as JSON")
    p.add_argument("entity")

    p = sub.add_parser("generate", help="Write the generated tree as a zip archive")
    p.add_argument("entity")
    p.add_argument("--out", help="Archive path (default: <slug>-ui.zip in the current directory)")

    p = sub.add_parser("sync", help="Merge generated files into an existing tree")
    p.add_argument("entity")
    p.add_argument("--dest", required=True, help="Destination root")
    p.add_argument("--strategy", default=settings.default_sync_strategy, choices=["respect-manual", "overwrite-auto"])
    p.add_argument("--dry-run", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        source = FileMetadataSource(args.metadata_dir) if args.metadata_dir else metadata_source_from_settings()
        engine = CompilerEngine(source, language=args.language)

        if args.command == "contract":
            contract = engine.get_contract(args.entity, args.preset)
            print(json.dumps(contract.to_dict(), indent=2, ensure_ascii=False))
            return 0

        if args.command == "generate":
            outcome = engine.generate(args.entity, args.preset, "archive")
            out = Path(args.out or outcome.archive["filename"])
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_bytes(base64.b64decode(outcome.archive["data"]))
            for artifact in outcome.artifacts:
                for w in artifact.warnings:
                    print(f"warning: {w.path}: {w.message}", file=sys.stderr)
            print(f"Wrote {len(outcome.artifacts)} files to {out}")
            return 0

        outcome = engine.sync(args.entity, args.preset, args.dest, args.strategy, dry_run=args.dry_run)
    except UICompilerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    conflicts = 0
    for result in outcome.merge_results:
        line = f"{result.status.value:10} {result.path}"
        if result.reason:
            line += f"  ({result.reason})"
        print(line)
        for w in result.warnings:
            print(f"{'':10} warning: {w}")
        if result.status == MergeStatus.CONFLICT:
            conflicts += 1
    return 1 if conflicts else 0


if __name__ == "__main__":
    sys.exit(main())
