from app.format import format_date_short, format_number, format_percentage


def test_format_number_uses_argentine_separators():
    assert format_number(1234567) == "1.234.567"
    assert format_number(1234.5, 1) == "1.234,5"
    assert format_number(0) == "0"


def test_format_number_handles_missing_values():
    assert format_number(None) == "0"
    assert format_number(float("nan")) == "0"
    assert format_number("abc") == "0"


def test_format_percentage():
    assert format_percentage(83.333) == "83,3%"
    assert format_percentage(None) == "0,0%"


def test_format_date_short():
    assert format_date_short("2025-01-05") == "05 ene"
    assert format_date_short("2025-12-31") == "31 dic"
    assert format_date_short("kein datum") == "kein datum"


def test_format_number_rounds_half_away_from_zero():
    """Halbe Einheiten werden weg von 0 gerundet, nicht auf die gerade Ziffer."""
    assert format_number(2.5) == "3"
    assert format_number(0.5) == "1"
    assert format_number(14.45, 1) == "14,5"
    assert format_number(-2.5) == "-3"
    assert format_number(1234.5) == "1.235"
    assert format_percentage(12.25) == "12,3%"
