import pytest

from ticket_printer.printing.thermal import (
    FEED_LINES,
    align_price,
    format_line,
    format_thermal,
    is_header,
    text_to_thermal,
)


def test_price_right_aligned_to_line_width():
    line = format_line("Coffee $3.5")
    assert line == "Coffee" + " " * 22 + "$3.5"
    assert len(line) == 32
    assert format_line("Total   $12.50") == "Total" + " " * 21 + "$12.50"


def test_price_alignment_honours_width():
    line = format_line("Tea $2.00", 48)
    assert len(line) == 48
    assert line.endswith("$2.00")
    assert line.startswith("Tea ")


def test_price_that_does_not_fit_is_left_alone():
    raw = "A very long product description here $100.00"
    assert align_price(raw) is None
    assert format_line(raw) == raw


def test_price_with_three_decimals_is_not_a_price():
    assert align_price("Tax $1.234") is None
    assert format_line("Tax $1.234") == "Tax $1.234"


def test_uppercase_header_is_centered():
    assert format_line("RECEIPT") == " " * 12 + "RECEIPT"
    assert format_line("RECEIPT", 48) == " " * 20 + "RECEIPT"


@pytest.mark.parametrize(
    "line",
    [
        "Thank you",  # mixed case
        "A" * 28,  # too wide for a header
        "TOTAL DUE $",  # carries a dollar sign
        "",
    ],
)
def test_lines_that_are_not_headers(line):
    assert not is_header(line)
    assert format_line(line) == line


def test_lines_are_trimmed():
    assert format_line("   Thank you   ") == "Thank you"


def test_feed_appended():
    assert format_thermal("Thanks") == "Thanks\n" + "\n" * FEED_LINES
    assert FEED_LINES == 4


def test_empty_input_yields_only_the_feed():
    assert format_thermal("") == "\n\n\n\n"
    assert text_to_thermal("") == "\n\n\n\n"
    assert text_to_thermal("<p> </p>") == "\n\n\n\n"


@pytest.mark.parametrize(
    "raw",
    [
        "RECEIPT\nCoffee $3.5\nMuffin $2.25\n\nThank you",
        "Plain line",
        "",
        "HEADER\n\n\n",
    ],
)
def test_formatting_is_idempotent(raw):
    once = format_thermal(raw)
    assert format_thermal(once) == once


def test_text_to_thermal_end_to_end():
    raw = "<h2>RECEIPT</h2><p>Coffee $3.50</p><hr><p>Thank you!</p>"
    out = text_to_thermal(raw, 32)
    lines = out.split("\n")
    assert lines[0] == " " * 12 + "RECEIPT"
    assert lines[1] == "Coffee" + " " * 21 + "$3.50"
    assert lines[2] == ""
    assert lines[3] == "─" * 32
    assert lines[4] == "Thank you!"
    assert out.endswith("Thank you!\n\n\n\n\n")
