# tests/unit/services/feeds/test_feed_parser.py
import pytest
from decimal import Decimal

from catalog_sync.core.exceptions import FeedParseError
from catalog_sync.services.feeds.parser import (
    parse_delisted_feed,
    parse_incoming_feed,
    parse_price,
    parse_stock,
)

SCENARIO_ROW = "001;Widget;desc;BrandX;Cat;Sub;1234567890123;19.99;10;BEC1;http://img"


def encode(*lines: str) -> bytes:
    return "\r\n".join(lines).encode("cp1252")


"""
1. Incoming feed
"""

def test_parse_incoming_schema_order():
    """Columns follow the supplier layout 001;002;024;014;004;005;008;003;006;010;022"""
    row = "A1;Title;Description;Brand;Category;Subcategory;3760001;12.50;7;B9;https://cdn/x.jpg"
    product = parse_incoming_feed(encode(row)).records[0]

    assert product.code == "A1"
    assert product.title == "Title"
    assert product.description == "Description"
    assert product.brand == "Brand"
    assert product.category == "Category"
    assert product.subcategory == "Subcategory"
    assert product.barcode == "3760001"
    assert product.price == Decimal("12.50")
    assert product.stock == 7
    assert product.bec == "B9"
    assert product.image_url == "https://cdn/x.jpg"


def test_parse_incoming_decodes_legacy_encoding():
    raw = "C2;Caf\xe9 cr\xe8me;;;;;376;1;1;;".encode("latin-1")
    product = parse_incoming_feed(raw).records[0]

    assert product.title == "Caf\xe9 cr\xe8me"


def test_parse_incoming_strips_quotes_and_artifacts():
    raw = encode('"C3";"L\'atelier";"";"";"";"";" 376 ";"2";"3";"";""')
    raw = raw.replace(b"atelier", b"ate\xef\xbf\xbdlier\x07")
    product = parse_incoming_feed(raw).records[0]

    assert product.code == "C3"
    assert product.title == "Latelier"
    assert product.barcode == "376"


def test_parse_incoming_skips_malformed_rows_with_warning():
    feed = parse_incoming_feed(encode(
        "C1;One;;;;;111;1;1;;",
        "C2;broken;row",
        "",
        "C3;Three;;;;;333;3;3;;",
    ))

    assert [p.code for p in feed.records] == ["C1", "C3"]
    assert len(feed.warnings) == 1
    assert "line 2" in feed.warnings[0]
    assert feed.total_rows == 3
    assert feed.skipped_rows == 1


@pytest.mark.parametrize("control", ["\x0b", "\x0c", "\x1c", "\x1d", "\x1e"])
def test_parse_incoming_control_character_stays_in_its_row(control):
    row = f"001;Widget;desc{control};BrandX;Cat;Sub;1234567890123;19.99;10;BEC1;http://img"

    feed = parse_incoming_feed(encode(row, "002;Gadget;;;;;376;1;1;;"))

    assert feed.warnings == []
    assert [p.code for p in feed.records] == ["001", "002"]
    assert feed.records[0].description == "desc"
    assert feed.records[0].image_url == "http://img"


def test_parse_incoming_mixed_line_endings():
    raw = b"C1;One;;;;;111;1;1;;\nC2;Two;;;;;222;2;2;;\r\nC3;Th\rree;;;;;333;3;3;;"
    feed = parse_incoming_feed(raw)

    assert [p.title for p in feed.records] == ["One", "Two", "Three"]
    assert feed.warnings == []


def test_parse_incoming_quotes_do_not_group_fields():
    feed = parse_incoming_feed(encode('C1;"One;Two";d;b;c;s;111;1;1;B;img'))

    assert feed.records == []
    assert feed.warnings == ["Skipped incoming feed line 1: expected 11 fields, got 12"]


def test_parse_incoming_reports_line_numbers_after_blank_lines():
    feed = parse_incoming_feed(encode("", "C1;One;;;;;111;1;1;;", "   ", "C2;short"))

    assert [p.code for p in feed.records] == ["C1"]
    assert feed.warnings == ["Skipped incoming feed line 4: expected 11 fields, got 2"]
    assert feed.total_rows == 2


def test_parse_incoming_tolerates_trailing_delimiter():
    feed = parse_incoming_feed(encode("C1;One;;;;;111;1;1;;;"))
    assert len(feed.records) == 1


def test_parse_incoming_bad_numbers_become_zero():
    product = parse_incoming_feed(encode("C1;One;;;;;111;abc;n/a;;")).records[0]

    assert product.price == Decimal("0")
    assert product.stock == 0


def test_parse_incoming_empty_feed_is_fatal():
    with pytest.raises(FeedParseError):
        parse_incoming_feed(b"   \r\n  \r\n")


def test_parse_incoming_from_path(tmp_path):
    path = tmp_path / "StockNouveautesCgn_20240101.csv"
    path.write_bytes(encode(SCENARIO_ROW))

    feed = parse_incoming_feed(path)
    assert feed.records[0].code == "001"


def test_parse_missing_file_is_fatal(tmp_path):
    with pytest.raises(FeedParseError):
        parse_incoming_feed(tmp_path / "missing.csv")


"""
2. Delisted feed
"""

def test_parse_delisted_keeps_only_code():
    feed = parse_delisted_feed(encode("999;a;b;c;d;e", " 888 ;;;;;"))

    assert [p.code for p in feed.records] == ["999", "888"]


def test_parse_delisted_wrong_width_skipped():
    feed = parse_delisted_feed(encode("999;a;b;c;d;e", "777;a"))

    assert [p.code for p in feed.records] == ["999"]
    assert len(feed.warnings) == 1


def test_parse_delisted_empty_feed_is_fatal():
    with pytest.raises(FeedParseError):
        parse_delisted_feed(b"")


"""
3. Numeric casting
"""

@pytest.mark.parametrize("raw, expected", [
    ("19.99", Decimal("19.99")),
    ("19,99", Decimal("19.99")),
    ("", Decimal("0")),
    ("abc", Decimal("0")),
    ("NaN", Decimal("0")),
    ("-3", Decimal("-3")),
])
def test_parse_price(raw, expected):
    assert parse_price(raw) == expected


@pytest.mark.parametrize("raw, expected", [
    ("10", 10),
    ("10.7", 10),
    ("", 0),
    ("x", 0),
    ("-2", -2),
])
def test_parse_stock(raw, expected):
    assert parse_stock(raw) == expected
