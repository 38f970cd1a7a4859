"""
Import one delimited catalog file from CLI.

Runs the single-step variant: the file is analysed and the accepted rows are
committed immediately. ``--dry-run`` stops after the analysis.
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
from pathlib import Path

from app.domain.bulk_import import ImportTarget
from app.domain.import_errors import BulkImportError
from app.repositories.catalog_repository import build_catalog_repository
from app.services.bulk_import_service import ImportAnalysis, get_bulk_import_service
from db.session import session_scope


def export_rejected(analysis: ImportAnalysis, path: Path) -> int:
    """
    Write rejected rows as they appeared in the file, under the file's own
    header, framed by the record number and the joined error messages.
    """
    rejected = analysis.partition.rejected
    sources = {row.row_number: analysis.source_row(row.row_number) for row in rejected}
    source_header = list(analysis.header.fields) if analysis.header is not None else []
    width = max([len(source_header), *(len(source.fields) for source in sources.values() if source is not None)])
    header = source_header + [""] * (width - len(source_header))

    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle, delimiter=analysis.delimiter)
        writer.writerow(["row", *header, "errors"])
        for row in rejected:
            source = sources[row.row_number]
            fields = list(source.fields) if source is not None else []
            fields += [""] * (width - len(fields))
            messages = "; ".join(item.message for item in row.diagnostics if item.is_error)
            writer.writerow([row.row_number, *fields, messages])
    return len(rejected)


def main() -> int:
    parser = argparse.ArgumentParser(description="Import a delimited catalog file.")
    parser.add_argument(
        "--target",
        required=True,
        choices=[target.value for target in ImportTarget],
        help="Catalog to import into.",
    )
    parser.add_argument("--file", dest="file", required=True, type=Path, help="Path to the file.")
    parser.add_argument(
        "--delimiter",
        default=None,
        help="Field delimiter; detected from the header line when omitted.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Analyse the file and report without writing anything.",
    )
    parser.add_argument(
        "--export-rejected",
        dest="export_rejected",
        default=None,
        type=Path,
        help="Write rejected rows and their errors to this path.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    target = ImportTarget(args.target)
    delimiter = "\t" if args.delimiter in {"tab", "\\t"} else args.delimiter
    service = get_bulk_import_service()
    payload = args.file.read_bytes()

    with session_scope() as db:
        store = build_catalog_repository(target, db)
        try:
            analysis = service.analyze(payload, target=target, store=store, delimiter=delimiter)
            commit = None if args.dry_run else service.commit_analysis(analysis, store)
        except (BulkImportError, ValueError) as exc:
            error = exc.to_dict() if isinstance(exc, BulkImportError) else {"message": str(exc)}
            print(json.dumps({"ok": False, "error": error}, indent=2))
            return 1

    output: dict[str, object] = {
        "target": target.value,
        "delimiter": analysis.delimiter,
        "dry_run": args.dry_run,
        "summary": analysis.partition.summary.to_dict(),
    }
    if commit is not None:
        output.update(
            {
                "ok": commit.ok,
                "created": commit.created,
                "updated": commit.updated,
                "skipped": commit.skipped,
            }
        )
    if args.export_rejected is not None:
        output["rejected_exported"] = export_rejected(analysis, args.export_rejected)

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
