"""TaxoMatch command-line interface.

This module provides the command-line interface functionality for TaxoMatch.
It includes the argument parser and command dispatching logic.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

import polars as pl

from taxomatch import __version__
from taxomatch.cache_manager import clear_cache, get_cache_stats
from taxomatch.config import config
from taxomatch.data_handler import read_names, write_output_file
from taxomatch.logging_config import setup_logging
from taxomatch.pipeline import (
    algaebase_name2id,
    algaebase_records_creator,
    algaebase_records_genus,
    algaebase_records_ids,
    algaebase_records_species,
    correct_scientific_names,
)
from taxomatch.reference_data import (
    default_sources,
    download_dyntaxa_biota,
    download_habs_taxlist,
    download_nordic_microalgae,
)
from taxomatch.sources.algaebase import AlgaeBaseClient

DOWNLOADS = {
    "dyntaxa": download_dyntaxa_biota,
    "nordic": download_nordic_microalgae,
    "habs": download_habs_taxlist,
}


def _add_common_arguments(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set logging level"
    )
    subparser.add_argument(
        "--log-file",
        type=str,
        help="Optional file to write logs to (in addition to console output)"
    )
    subparser.add_argument(
        "--no-progress",
        dest="show_progress",
        action="store_false",
        help="Disable progress bars"
    )


def _add_io_arguments(subparser: argparse.ArgumentParser, input_help: str) -> None:
    subparser.add_argument(
        "-i", "--input",
        type=str,
        required=True,
        help=input_help
    )
    subparser.add_argument(
        "-o", "--output",
        type=str,
        required=True,
        help="Output file"
    )
    subparser.add_argument(
        "--column",
        type=str,
        help="Input column holding the values (auto-detected when omitted)"
    )
    subparser.add_argument(
        "--output-format",
        choices=["csv", "tsv", "parquet"],
        default=config.output_format,
        help="Output file format"
    )


def _add_algaebase_arguments(subparser: argparse.ArgumentParser) -> None:
    group = subparser.add_argument_group("AlgaeBase Settings")
    group.add_argument(
        "--api-key",
        dest="algaebase_api_key",
        type=str,
        help="AlgaeBase API key (defaults to the ALGAEBASE_API_KEY environment variable)"
    )
    group.add_argument(
        "--timeout",
        dest="request_timeout",
        type=float,
        help="HTTP request timeout in seconds"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="TaxoMatch: Correct scientific names and reconcile AlgaeBase records.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # Global options for cache management and application metadata
    parser.add_argument(
        "--cache-stats",
        action="store_true",
        default=False,
        help="Display statistics about the download cache and exit"
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        default=False,
        help="Clear the download cache. May be used in isolation."
    )
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and exit"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show version number and exit"
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- 'correct' command ---
    parser_correct = subparsers.add_parser(
        "correct", help="Correct names against Dyntaxa, Nordic Microalgae and WoRMS"
    )
    _add_io_arguments(parser_correct, "File with the names to correct (txt, csv, tsv or parquet)")
    parser_correct.add_argument(
        "--threshold",
        dest="correction_threshold",
        type=float,
        help=f"Maximum Levenshtein distance (default {config.correction_threshold})"
    )
    parser_correct.add_argument(
        "--sources",
        dest="source_precedence",
        nargs="+",
        choices=["Dyntaxa", "Nordic", "WoRMS"],
        help="Reference sources in priority order"
    )
    _add_common_arguments(parser_correct)

    # --- 'name2id' command ---
    parser_name2id = subparsers.add_parser(
        "name2id", help="Look up AlgaeBase ids for genus or species names"
    )
    _add_io_arguments(parser_name2id, "File with the names to look up")
    parser_name2id.add_argument(
        "--threshold",
        dest="record_threshold",
        type=float,
        help=f"Maximum Levenshtein distance (default {config.record_threshold})"
    )
    _add_algaebase_arguments(parser_name2id)
    _add_common_arguments(parser_name2id)

    # --- 'species' command ---
    parser_species = subparsers.add_parser(
        "species", help="Fetch AlgaeBase species records"
    )
    _add_io_arguments(parser_species, "File with the species names")
    parser_species.add_argument(
        "--threshold",
        dest="record_threshold",
        type=float,
        help=f"Maximum Levenshtein distance (default {config.record_threshold})"
    )
    parser_species.add_argument(
        "--no-filter",
        dest="apply_filter",
        action="store_false",
        help="Keep every record returned by AlgaeBase"
    )
    parser_species.add_argument(
        "--no-taxo",
        dest="add_taxo",
        action="store_false",
        help="Do not add genus classification columns"
    )
    parser_species.add_argument("--offset", type=int, default=0, help="Pagination offset")
    parser_species.add_argument(
        "--count",
        dest="page_count",
        type=int,
        help=f"Records per request (default {config.page_count})"
    )
    _add_algaebase_arguments(parser_species)
    _add_common_arguments(parser_species)

    # --- 'genus' command ---
    parser_genus = subparsers.add_parser(
        "genus", help="Fetch AlgaeBase genus records"
    )
    _add_io_arguments(parser_genus, "File with the genus names")
    _add_algaebase_arguments(parser_genus)
    _add_common_arguments(parser_genus)

    # --- 'ids' command ---
    parser_ids = subparsers.add_parser(
        "ids", help="Fetch AlgaeBase species records by id"
    )
    _add_io_arguments(parser_ids, "File with the AlgaeBase species ids")
    parser_ids.add_argument(
        "--no-taxo",
        dest="add_taxo",
        action="store_false",
        help="Do not add genus classification columns"
    )
    _add_algaebase_arguments(parser_ids)
    _add_common_arguments(parser_ids)

    # --- 'creator' command ---
    parser_creator = subparsers.add_parser(
        "creator", help="Fetch AlgaeBase species records by creator"
    )
    parser_creator.add_argument(
        "--creator",
        nargs="+",
        required=True,
        help="Creator name prefix(es)"
    )
    parser_creator.add_argument("-o", "--output", type=str, required=True, help="Output file")
    parser_creator.add_argument(
        "--output-format",
        choices=["csv", "tsv", "parquet"],
        default=config.output_format,
        help="Output file format"
    )
    parser_creator.add_argument("--offset", type=int, default=0, help="Pagination offset")
    parser_creator.add_argument("--count", type=int, default=100000, help="Records per request")
    _add_algaebase_arguments(parser_creator)
    _add_common_arguments(parser_creator)

    # --- 'download' command ---
    parser_download = subparsers.add_parser(
        "download", help="Download a reference checklist"
    )
    parser_download.add_argument(
        "checklist",
        choices=sorted(DOWNLOADS),
        help="Checklist to download"
    )
    parser_download.add_argument(
        "--save-dir",
        type=str,
        default=".",
        help="Directory to save the raw checklist to"
    )
    parser_download.add_argument(
        "--refresh-cache",
        action="store_true",
        default=False,
        help="Download again even if a cached copy exists"
    )
    _add_common_arguments(parser_download)

    return parser


def _write(df: pl.DataFrame, args: argparse.Namespace) -> None:
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    write_output_file(df, output, args.output_format)
    logging.info(f"Wrote {df.height} rows to {output}")


def _run_pipeline(args: argparse.Namespace) -> pl.DataFrame:
    """Dispatch a data command to its pipeline."""
    if args.command == "creator":
        return algaebase_records_creator(args.creator, AlgaeBaseClient(), offset=args.offset, count=args.count)

    values = read_names(args.input, args.column)

    if args.command == "correct":
        return correct_scientific_names(values, default_sources())

    client = AlgaeBaseClient()
    if args.command == "name2id":
        return algaebase_name2id(values, client)
    if args.command == "species":
        return algaebase_records_species(
            values,
            client,
            add_taxo=args.add_taxo,
            apply_filter=args.apply_filter,
            offset=args.offset,
        )
    if args.command == "genus":
        return algaebase_records_genus(values, client)
    if args.command == "ids":
        return algaebase_records_ids(values, client, add_taxo=args.add_taxo)
    raise ValueError(f"Unknown command: {args.command}")


def run_command(args: argparse.Namespace) -> int:
    """Run a data command and write its output table."""
    config.update_from_args(vars(args))
    config.ensure_directories()
    setup_logging(args.log_level, args.log_file)

    try:
        start_time = time.time()
        logging.info(f"Starting TaxoMatch {args.command}")
        df = _run_pipeline(args)
        _write(df, args)
        elapsed_time = time.time() - start_time
        logging.info(f"Processing completed in {elapsed_time:.2f} seconds")
        return 0
    except Exception as e:
        logging.error(f"Error running {args.command}: {str(e)}", exc_info=True)
        return 1


def run_download(args: argparse.Namespace) -> int:
    """Download a reference checklist and save it."""
    config.update_from_args(vars(args))
    config.ensure_directories()
    setup_logging(args.log_level, args.log_file)

    try:
        df = DOWNLOADS[args.checklist](save_dir=args.save_dir, write=True, refresh_cache=args.refresh_cache)
        print(f"Downloaded {args.checklist}: {df.height} rows, {df.width} columns")
        return 0
    except Exception as e:
        logging.error(f"Error downloading {args.checklist}: {str(e)}", exc_info=True)
        return 1


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the TaxoMatch CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    # Global commands run before subcommand dispatch
    if parsed_args.show_config:
        print(config.get_config_summary())
        return 0

    if parsed_args.cache_stats:
        stats = get_cache_stats()
        print("\nTaxoMatch Cache Statistics:")
        for key, value in stats.items():
            print(f"  {key}: {value}")
        return 0

    if parsed_args.clear_cache:
        count = clear_cache()
        print(f"\nCleared {count} cache entries")
        if parsed_args.command is None:
            return 0

    if parsed_args.command is None:
        parser.error("a command is required")
    if parsed_args.command == "download":
        return run_download(parsed_args)
    return run_command(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
