"""
Command-line interface for the product gate.

Provides subcommands for listing categories, validating one record,
sweeping a directory of records, checking a golden set and converting
legacy records.

Exit codes: 0 WRITE, 1 REPAIR, 2 REJECT, 3 configuration error.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

from .config.settings import get_max_workers, get_snapshot_dir
from .errors import ConfigError, SnapshotError
from .legacy import infer_legacy_record
from .logging_config import configure_logging
from .models import EXIT_CONFIG_ERROR, Verdict
from .pipeline.report import render_markdown
from .pipeline.runner import evaluate_record
from .qa import golden
from .qa.sweep import run_sweep
from .registry import get_registry


def _read_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}")


def _write_text(path: str, content: str) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        f.write(content)


def _read_dir(directory: Path) -> Tuple[List[Any], List[str]]:
    if not directory.is_dir():
        raise ConfigError(f"Not a directory: {directory}")
    paths = sorted(directory.glob("*.json"))
    return [_read_json(p) for p in paths], [p.name for p in paths]


def cmd_categories(args: argparse.Namespace) -> int:
    """List registered categories."""
    try:
        registry = get_registry()
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    for category_id in registry.list():
        bundle = registry.lookup(category_id)
        print(f"{category_id:<20} {bundle.tier.value:<11} {bundle.label}")
        if args.verbose:
            for c, weight in bundle.weights.items():
                label = bundle.criteria_labels.get(c, c)
                print(f"    {c:<4} {weight:>5.2f}  baseline {bundle.baseline[c]:>4.1f}  {label}")
            print(f"    {len(bundle.rules)} rule(s)")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate, normalize and score one record."""
    try:
        data = _read_json(Path(args.input))
        decision = evaluate_record(data, registry=get_registry(), category_id=args.category)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    print(f"{decision.verdict.value}: {decision.category_id} {decision.record_id or '-'}")
    for v in decision.violations:
        print(f"  [{v.severity.value}] {v.field}: {v.kind.value} ({v.detail})")

    if args.verbose and decision.repair_prompt:
        print()
        print(decision.repair_prompt)

    if args.record_out and decision.verdict == Verdict.WRITE:
        _write_text(args.record_out, json.dumps(decision.record, indent=2, ensure_ascii=False) + "\n")
        print(f"Record written to {args.record_out}")
    if args.report_out:
        _write_text(args.report_out, render_markdown(decision))
        print(f"Report written to {args.report_out}")
    if args.repair_out and decision.repair_prompt:
        _write_text(args.repair_out, decision.repair_prompt + "\n")
        print(f"Repair prompt written to {args.repair_out}")
    if args.filled_out and decision.filled_specs is not None:
        _write_text(args.filled_out, json.dumps(decision.filled_specs, indent=2, ensure_ascii=False) + "\n")
        print(f"Placeholder-filled specs written to {args.filled_out}")

    return decision.exit_code


def cmd_sweep(args: argparse.Namespace) -> int:
    """Validate every *.json record in a directory."""
    try:
        inputs, names = _read_dir(Path(args.directory))
        workers = get_max_workers() if args.workers is None else args.workers
        if workers < 1:
            raise ConfigError(f"--workers must be a positive integer, got {workers}")
        report = run_sweep(inputs, get_registry(), max_workers=workers, sources=names)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    for entry in report.sorted_entries():
        print(f"{entry.status:<13} {entry.source}")
        if args.verbose and entry.decision is not None:
            for v in entry.decision.violations:
                print(f"    {v.field}: {v.kind.value}")

    print()
    print(", ".join(f"{k}={v}" for k, v in report.counts().items()))

    if args.output:
        _write_text(args.output, json.dumps(report.to_dict(), indent=2) + "\n")
        print(f"Sweep report written to {args.output}")

    return report.exit_code


def cmd_qa(args: argparse.Namespace) -> int:
    """Compare fresh output for a category against its golden snapshot."""
    snapshot_path = Path(args.snapshot) if args.snapshot else get_snapshot_dir() / f"{args.category}.json"

    try:
        inputs, names = _read_dir(Path(args.directory))
        registry = get_registry()
        records = []
        for name, data in zip(names, inputs):
            decision = evaluate_record(data, registry=registry, category_id=args.category)
            if decision.verdict != Verdict.WRITE:
                print(f"Skipped {name}: {decision.verdict.value}", file=sys.stderr)
                continue
            records.append(decision.record)
        actual = golden.build_snapshot(args.category, records)

        if args.write_snapshot:
            path, content_hash = golden.write_snapshot(actual, snapshot_path)
            print(f"Snapshot written: {path} ({content_hash}, {actual['productCount']} product(s))")
            return 0

        expected = golden.load_snapshot(snapshot_path)
    except (ConfigError, SnapshotError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    drifts = golden.diff_snapshot(expected, actual)
    if not drifts:
        print(f"QA passed: {args.category} ({actual['productCount']} product(s), no drift)")
        return 0

    print(f"QA failed: {len(drifts)} drift(s) in {args.category}")
    for d in drifts:
        print(f"  {d.product_id} {d.field}: expected {d.expected}, got {d.actual}")
    return 1


def cmd_legacy(args: argparse.Namespace) -> int:
    """Infer a fallback record from a legacy product."""
    try:
        legacy = _read_json(Path(args.input))
        record = infer_legacy_record(legacy, category_id=args.category, registry=get_registry())
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    content = json.dumps(record, indent=2, ensure_ascii=False)
    if args.output:
        _write_text(args.output, content + "\n")
        print(f"Fallback record written to {args.output}")
    else:
        print(content)
    return 0


def main(argv: Optional[list] = None) -> int:
    """Main CLI entrypoint."""
    parser = argparse.ArgumentParser(
        prog="productgate",
        description="Product record quality gate - validate, normalize and score"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # categories command
    categories_parser = subparsers.add_parser("categories", help="List registered categories")
    categories_parser.set_defaults(func=cmd_categories)

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Validate one record")
    validate_parser.add_argument("input", help="Record JSON file")
    validate_parser.add_argument("--category", help="Override product.categoryId")
    validate_parser.add_argument("--record-out", help="Write the record here on WRITE")
    validate_parser.add_argument("--report-out", help="Write a Markdown report here")
    validate_parser.add_argument("--repair-out", help="Write the repair prompt here")
    validate_parser.add_argument("--filled-out", help="Write specs with placeholders here on REPAIR")
    validate_parser.set_defaults(func=cmd_validate)

    # sweep command
    sweep_parser = subparsers.add_parser("sweep", help="Validate every record in a directory")
    sweep_parser.add_argument("directory", help="Directory of record JSON files")
    sweep_parser.add_argument("--workers", type=int, help="Worker threads (default: PRODUCTGATE_MAX_WORKERS)")
    sweep_parser.add_argument("--output", "-o", help="Output file (JSON)")
    sweep_parser.set_defaults(func=cmd_sweep)

    # qa command
    qa_parser = subparsers.add_parser("qa", help="Check a category against its golden snapshot")
    qa_parser.add_argument("directory", help="Directory of record JSON files")
    qa_parser.add_argument("--category", required=True, help="Category id")
    qa_parser.add_argument("--snapshot", help="Snapshot file (default: <snapshot dir>/<category>.json)")
    qa_parser.add_argument("--write-snapshot", action="store_true",
                           help="Regenerate the snapshot instead of diffing")
    qa_parser.set_defaults(func=cmd_qa)

    # legacy command
    legacy_parser = subparsers.add_parser("legacy", help="Infer a fallback record from a legacy product")
    legacy_parser.add_argument("input", help="Legacy product JSON file")
    legacy_parser.add_argument("--category", help="Category id (default: categoryId in file)")
    legacy_parser.add_argument("--output", "-o", help="Output file (JSON)")
    legacy_parser.set_defaults(func=cmd_legacy)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
