from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from typing import Any, TextIO

import pypresto
from pypresto.error import Error

_logger = logging.getLogger(__name__)


def _format_value(value: Any) -> str:
    if value is None:
        return "NULL"
    return str(value)


def write_tsv(out: TextIO, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
    out.write("\t".join(columns) + "\n")
    for row in rows:
        out.write("\t".join(_format_value(v) for v in row) + "\n")


def write_tabular(out: TextIO, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
    cells = [list(columns)] + [[_format_value(v) for v in row] for row in rows]
    widths = [max(len(line[i]) for line in cells) for i in range(len(columns))]
    for line in cells:
        out.write("  ".join(c.ljust(w) for c, w in zip(line, widths, strict=True)).rstrip() + "\n")


_WRITERS = {"tabular": write_tabular, "tsv": write_tsv}


def _fatal(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


def prq(argv: Sequence[str] | None = None) -> int:
    """Run one query and print its result."""
    parser = argparse.ArgumentParser(prog="prq", description="Run a Presto query.")
    parser.add_argument("dsn", nargs="?", help="presto://[user@]host[:port]/[catalog[/schema]]")
    parser.add_argument("query", nargs="?", help="Query text.")
    parser.add_argument(
        "-o",
        "--output",
        choices=sorted(_WRITERS),
        default="tabular",
        help="Output format (default: tabular).",
    )
    parser.add_argument("-q", "--query-file", help="Read the query from a file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log requests.")
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.dsn:
        return _fatal("missing required data source argument")
    if args.query_file:
        try:
            with open(args.query_file, encoding="utf-8") as f:
                query = f.read()
        except OSError as e:
            return _fatal(f"failed to read query: {e}")
    elif args.query:
        query = args.query
    else:
        return _fatal("missing required query argument")

    try:
        with pypresto.connect(args.dsn) as conn:
            cursor = conn.cursor()
            cursor.execute(query)
            columns = [d[0] for d in cursor.description or []]
            rows = cursor.fetchall()
    except Error as e:
        return _fatal(f"failed to query presto: {e}")
    _WRITERS[args.output](sys.stdout, columns, rows)
    return 0


def prestoschema(argv: Sequence[str] | None = None) -> int:
    """List the tables of the schema named by the data source."""
    parser = argparse.ArgumentParser(
        prog="prestoschema", description="Show the tables of a Presto schema."
    )
    parser.add_argument("dsn", nargs="?", help="presto://[user@]host[:port]/[catalog[/schema]]")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log requests.")
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.dsn:
        return _fatal("missing required data source argument")
    try:
        with pypresto.connect(args.dsn) as conn:
            cursor = conn.cursor()
            cursor.execute("SHOW TABLES")
            for row in cursor:
                print(row[0])
    except Error as e:
        return _fatal(f"failed to query presto: {e}")
    return 0


def main_prq() -> None:
    sys.exit(prq())


def main_prestoschema() -> None:
    sys.exit(prestoschema())
