# catalog_sync/services/feeds/parser.py
"""
Parsers for the two supplier feeds.

Both feeds are semicolon-delimited text in a legacy single-byte encoding with
fixed positional columns and no header row. Bytes are decoded first, then
read with pandas; quote characters are stripped, rows with the wrong number of
fields are skipped with a warning, and the remaining rows are normalised
column by column before being turned into records.
"""

import csv
import io
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

import pandas as pd

from catalog_sync.core.exceptions import FeedParseError
from catalog_sync.core.utils import CONTROL_CHARS_PATTERN, REPLACEMENT_ARTIFACTS
from catalog_sync.schemas.feed import DelistedProduct, IncomingProduct, ParsedFeed

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "cp1252"
DELIMITER = ";"
QUOTE_CHARACTERS = ("'", '"')


@dataclass(frozen=True)
class FeedSchema:
    """Positional column codes and the record field each one feeds"""
    name: str
    columns: Tuple[str, ...]
    fields: Dict[str, str]
    numeric_columns: Tuple[str, ...] = ()


INCOMING_SCHEMA = FeedSchema(
    name="incoming",
    columns=("001", "002", "024", "014", "004", "005", "008", "003", "006", "010", "022"),
    fields={
        "001": "code",
        "002": "title",
        "024": "description",
        "014": "brand",
        "004": "category",
        "005": "subcategory",
        "008": "barcode",
        "003": "price",
        "006": "stock",
        "010": "bec",
        "022": "image_url",
    },
    numeric_columns=("003", "006"),
)

DELISTED_SCHEMA = FeedSchema(
    name="delisted",
    columns=("001", "002", "003", "004", "005", "006"),
    fields={"001": "code"},
)


def parse_price(value) -> Decimal:
    """Price column to Decimal; anything unparsable becomes zero."""
    text = str(value if value is not None else "").strip().replace(",", ".")
    if not text:
        return Decimal("0")
    try:
        price = Decimal(text)
    except InvalidOperation:
        return Decimal("0")
    if not price.is_finite():
        return Decimal("0")
    return price


def parse_stock(value) -> int:
    """Stock column to int, flooring decimals; anything unparsable becomes zero."""
    quantity = parse_price(value)
    return int(quantity.to_integral_value(rounding=ROUND_FLOOR))


def decode_feed(raw: bytes, encoding: str = DEFAULT_ENCODING) -> str:
    try:
        text = raw.decode(encoding, errors="replace")
    except LookupError as e:
        raise FeedParseError(f"Unknown feed encoding '{encoding}'") from e
    # A UTF-8 BOM decoded as a single-byte charset
    return text.lstrip("\ufeff").lstrip("\u00ef\u00bb\u00bf")


def read_rows(text: str, schema: FeedSchema) -> Tuple[List[List[str]], List[str], int]:
    """
    Read decoded text into field lists of exactly ``len(schema.columns)``.

    Only ``\\n`` ends a record; any other control character stays inside its
    field until normalisation strips it. Returns (rows, warnings, total_rows).
    Blank lines are not counted.
    """
    expected = len(schema.columns)
    # csv.reader rejects a bare carriage return or NUL inside a record
    text = text.replace("\r\n", "\n").replace("\r", "").replace("\x00", "")
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    width = max([expected] + [line.count(DELIMITER) + 1 for line in lines])

    df = pd.read_csv(
        io.StringIO(text),
        sep=DELIMITER,
        header=None,
        names=list(range(width)),
        dtype=str,
        quoting=csv.QUOTE_NONE,
        keep_default_na=False,
        skip_blank_lines=False,
        engine="python",
    )

    rows: List[List[str]] = []
    warnings: List[str] = []
    total = 0

    for line_number, (line, values) in enumerate(zip(lines, df.itertuples(index=False, name=None)), start=1):
        if not line.strip():
            continue
        total += 1
        # Cells past the record's own field count are padding
        fields = ["" if pd.isna(value) else str(value) for value in values[:line.count(DELIMITER) + 1]]
        for quote in QUOTE_CHARACTERS:
            fields = [field.replace(quote, "") for field in fields]

        # Tolerate trailing delimiters
        while len(fields) > expected and not fields[-1].strip():
            fields.pop()

        if len(fields) != expected:
            message = (f"Skipped {schema.name} feed line {line_number}: "
                       f"expected {expected} fields, got {len(fields)}")
            logger.warning(message)
            warnings.append(message)
            continue
        rows.append(fields)

    return rows, warnings, total


def normalise_frame(rows: List[List[str]], schema: FeedSchema) -> pd.DataFrame:
    """Clean every text column; cast the numeric ones."""
    df = pd.DataFrame(rows, columns=list(schema.columns), dtype="string").fillna("")

    for column in schema.columns:
        series = df[column]
        for artifact in REPLACEMENT_ARTIFACTS:
            series = series.str.replace(artifact, "", regex=False)
        series = series.str.replace(CONTROL_CHARS_PATTERN, "", regex=True)
        df[column] = series.str.strip()

    if "003" in schema.numeric_columns:
        df["003"] = df["003"].astype(object).map(parse_price)
    if "006" in schema.numeric_columns:
        df["006"] = df["006"].astype(object).map(parse_stock)

    return df


def _parse(raw: bytes, schema: FeedSchema, factory: Callable, encoding: str, source: str) -> ParsedFeed:
    logger.info(f"Reading {schema.name} feed: {source}")
    text = decode_feed(raw, encoding)

    if not text.strip():
        raise FeedParseError(f"{schema.name.capitalize()} feed is empty: {source}")

    rows, warnings, total = read_rows(text, schema)
    if total == 0:
        raise FeedParseError(f"{schema.name.capitalize()} feed is empty: {source}")

    records = []
    if rows:
        df = normalise_frame(rows, schema)
        renamed = df[list(schema.fields)].rename(columns=schema.fields)
        records = [factory(**row) for row in renamed.to_dict(orient="records")]

    logger.info(f"Parsed {len(records)} {schema.name} records ({len(warnings)} rows skipped)")
    return ParsedFeed(records=records, warnings=warnings, total_rows=total)


def _read(source: Union[bytes, str, Path]) -> Tuple[bytes, str]:
    if isinstance(source, bytes):
        return source, "<bytes>"
    path = Path(source)
    try:
        return path.read_bytes(), str(path)
    except OSError as e:
        raise FeedParseError(f"Could not read feed {path}: {e}") from e


def parse_incoming_feed(source: Union[bytes, str, Path], encoding: Optional[str] = None) -> ParsedFeed:
    """
    Parse the new/updated products feed.

    Args:
        source: Raw feed bytes or a path to the feed file
        encoding: Source encoding (defaults to cp1252)

    Returns:
        ParsedFeed of IncomingProduct in file order

    Raises:
        FeedParseError: If the feed is empty or unreadable
    """
    raw, name = _read(source)
    return _parse(raw, INCOMING_SCHEMA, IncomingProduct, encoding or DEFAULT_ENCODING, name)


def parse_delisted_feed(source: Union[bytes, str, Path], encoding: Optional[str] = None) -> ParsedFeed:
    """Parse the out-of-stock feed. Only the first column (product code) is kept."""
    raw, name = _read(source)
    return _parse(raw, DELISTED_SCHEMA, DelistedProduct, encoding or DEFAULT_ENCODING, name)
