import io
import logging
from pathlib import Path
from typing import List, Optional

import polars as pl

from taxomatch.sources.table import find_name_column

logger = logging.getLogger(__name__)


def parse_delimited_text(text: str, separator: str = "\t") -> pl.DataFrame:
    """
    Parse delimited text with a header row into a Polars DataFrame.

    All columns are read as strings; empty fields become nulls.
    """
    return pl.read_csv(
        io.BytesIO(text.encode("utf-8")),
        separator=separator,
        infer_schema_length=0,
        quote_char=None,
        truncate_ragged_lines=True,
    )


def read_input_file(input_file, input_format: Optional[str] = None) -> pl.DataFrame:
    """
    Read a tabular input file into a Polars DataFrame based on the format.

    The format is taken from the file extension when not given.
    """
    input_format = input_format or Path(input_file).suffix.lstrip(".").lower()
    logger.info(f"Reading input {input_format.upper()} file: {input_file}")
    if input_format == "parquet":
        return pl.read_parquet(input_file)
    elif input_format == "csv":
        return pl.read_csv(input_file, infer_schema_length=0)
    elif input_format in ("tsv", "txt"):
        return pl.read_csv(input_file, separator="\t", infer_schema_length=0, quote_char=None)
    else:
        raise ValueError(f"Unsupported input format: {input_format}")


def read_names(input_file, column: Optional[str] = None) -> List[Optional[str]]:
    """
    Read the names to resolve from a file.

    Plain ``.txt`` files hold one name per line unless a column is given;
    tables use ``column`` or the first recognised scientific name column.
    """
    path = Path(input_file)
    if path.suffix.lower() == ".txt" and column is None:
        with open(path, encoding="utf-8") as f:
            names = [line.strip() for line in f if line.strip()]
        logger.info(f"Read {len(names)} names from {path}")
        return names

    df = read_input_file(path)
    name_column = find_name_column(df, column)
    names = df.get_column(name_column).to_list()
    logger.info(f"Read {len(names)} names from column '{name_column}' of {path}")
    return names


def write_output_file(df: pl.DataFrame, output_file, output_format: Optional[str] = None) -> None:
    """
    Write the Polars DataFrame to the specified output file in the desired format.
    """
    output_format = output_format or Path(output_file).suffix.lstrip(".").lower()
    try:
        if output_format == "parquet":
            logger.info(f"Writing to Parquet: {output_file}")
            df.write_parquet(output_file)
        elif output_format == "csv":
            logger.info(f"Writing to CSV: {output_file}")
            df.write_csv(output_file)
        elif output_format == "tsv":
            logger.info(f"Writing to TSV: {output_file}")
            df.write_csv(output_file, separator="\t")
        else:
            raise ValueError(f"Unsupported output format: {output_format}")
    except Exception as e:
        logger.error(f"Error writing output file '{output_file}': {e}")
        raise
