"""
Unit tests for market and product import parsers.

Files are built in memory: semicolon CSV text or an XLSX written with
pandas/openpyxl.

Run: pytest tests/unit/test_import_parsers.py -v
"""

import pytest
from io import BytesIO

import pandas as pd

from exceptions import ImportFileError, ImportParseError
from models.product import Department
from parsers import (
    normalize_chain,
    parse_market_file,
    parse_product_file,
    validate_import_file,
)
from parsers.file_reader import to_number

MARKET_COLUMNS = 22


def market_row(**cells) -> list[str]:
    """Positional market row; keys are column letters."""
    row = [""] * MARKET_COLUMNS
    for letter, value in cells.items():
        row[ord(letter) - ord("A")] = value
    return row


def market_header() -> list[str]:
    return [f"Spalte{i}" for i in range(MARKET_COLUMNS)]


def to_csv(rows: list[list[str]]) -> bytes:
    return "\n".join(";".join(r) for r in rows).encode("utf-8")


def to_xlsx(rows: list[list[str]]) -> bytes:
    buffer = BytesIO()
    pd.DataFrame(rows).to_excel(buffer, header=False, index=False, engine="openpyxl")
    return buffer.getvalue()


class TestValidateImportFile:

    def test_accepts_known_extensions(self):
        assert validate_import_file("Märkte.XLSX", 100) == ".xlsx"
        assert validate_import_file("list.csv", 100) == ".csv"

    def test_rejects_other_types(self):
        with pytest.raises(ImportFileError) as exc_info:
            validate_import_file("list.pdf", 100)

        assert "Ungültiges Dateiformat" in exc_info.value.message

    def test_rejects_large_files(self):
        with pytest.raises(ImportFileError):
            validate_import_file("list.csv", 2048, max_bytes=1024)


class TestNormalizeChain:

    @pytest.mark.parametrize("raw,expected", [
        ("billa plus", "Billa+"),
        ("  SPAR ", "Spar"),
        ("Spar Gourmet", "Spar Gourmet"),
        ("", "Sonstige"),
        (None, "Sonstige"),
        ("Nah&Frisch", "Nah&Frisch"),
    ])
    def test_variants(self, raw, expected):
        assert normalize_chain(raw) == expected


class TestToNumber:

    @pytest.mark.parametrize("text,expected", [
        ("12", 12.0),
        ("1,5", 1.5),
        ("1.234,50", 1234.5),
        ("3,99 €", 3.99),
        ("", None),
        ("abc", None),
    ])
    def test_parse(self, text, expected):
        assert to_number(text) == expected


class TestParseMarketFile:

    def test_csv_positional_columns(self):
        # Arrange
        content = to_csv([
            market_header(),
            market_row(A="1001", D="LEH", E="Billa", F="billa plus", H="Billa Mödling",
                       I="2340", J="Mödling", K="Hauptstraße 1", M="Anna Berger",
                       N="anna@example.at", O="Aktiv", Q="24", U="+43 1 234", V="markt@example.at"),
            market_row(A="1002", F="spar", H="Spar Baden", O="inaktiv"),
        ])

        # Act
        result = parse_market_file(content, "maerkte.csv")

        # Assert
        assert result.errors == []
        first, second = result.markets
        assert first.id == "1001"
        assert first.chain == "Billa+"
        assert first.city == "Mödling"
        assert first.address == "Hauptstraße 1"
        assert first.gebietsleiter_email == "anna@example.at"
        assert first.is_active is True
        assert first.frequency == 24
        assert second.chain == "Spar"
        assert second.is_active is False
        assert second.frequency == 12

    def test_rows_without_id_or_name_reported(self):
        content = to_csv([
            market_header(),
            market_row(A="1001"),
            market_row(H="Ohne ID"),
            market_row(A="1003", H="Hofer Wien", F="hofer"),
        ])

        result = parse_market_file(content, "maerkte.csv")

        assert [m.id for m in result.markets] == ["1003"]
        assert [(e.row, e.error) for e in result.errors] == [
            (2, "ID oder Name fehlt"),
            (3, "ID oder Name fehlt"),
        ]

    def test_xlsx(self):
        content = to_xlsx([
            market_header(),
            market_row(A="2001", H="Interspar Graz", F="interspar", Q="0"),
        ])

        result = parse_market_file(content, "maerkte.xlsx")

        assert result.markets[0].chain == "Interspar"
        assert result.markets[0].frequency == 1

    def test_header_only_is_rejected(self):
        with pytest.raises(ImportParseError) as exc_info:
            parse_market_file(to_csv([market_header()]), "leer.csv")

        assert exc_info.value.message == "Die Datei enthält keine Daten"


class TestParseProductFile:

    def test_columns_and_department(self):
        # Arrange
        header = [f"Spalte{i}" for i in range(11)]
        rows = [
            header,
            ["Whiskas Huhn", "", "85g", "Nassfutter", "", "480", "", "", "", "", "0,89"],
            ["Sheba Lachs", "", "85g", "", "", "", "", "", "", "", ""],
            ["", "", "", "", "", "", "", "", "", "", ""],
        ]

        # Act
        result = parse_product_file(to_xlsx(rows), "produkte.xlsx", Department.PETS)

        # Assert
        assert [p.name for p in result.products] == ["Whiskas Huhn", "Sheba Lachs"]
        whiskas = result.products[0]
        assert whiskas.price == 0.89
        assert whiskas.pallet_size == 480
        assert whiskas.content == "Nassfutter"
        assert whiskas.department == Department.PETS
        assert result.products[1].price == 0.0

    def test_invalid_price(self):
        rows = [
            [f"Spalte{i}" for i in range(11)],
            ["Felix Mix", "", "100g", "", "", "", "", "", "", "", "gratis"],
        ]

        result = parse_product_file(to_csv(rows), "produkte.csv", Department.PETS)

        assert result.products == []
        assert result.errors[0].error == "Ungültiger Preis: gratis"
