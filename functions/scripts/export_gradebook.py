"""
Export a class gradebook as CSV.

Reads from the configured document store (DATABASE_URL) and writes to a file
or stdout.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from engage.classes import get_class
from engage.dependencies import get_document_store
from engage.gradebook import export_gradebook_to_csv, load_class_gradebook


logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Export a class gradebook as CSV")
    parser.add_argument("class_id", help="Class to export")
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="File to write; stdout when omitted",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    store = get_document_store()

    if get_class(store, args.class_id) is None:
        logger.error("Class not found: %s", args.class_id)
        return 1

    gradebook, assignments = load_class_gradebook(store, args.class_id)
    csv_text = export_gradebook_to_csv(gradebook.entries, assignments)

    if args.output is None:
        sys.stdout.write(csv_text + "\n")
    else:
        args.output.write_text(csv_text + "\n", encoding="utf-8")
        logger.info(
            "Wrote %d students x %d assignments to %s",
            len(gradebook.entries),
            len(assignments),
            args.output,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
