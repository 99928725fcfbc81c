"""
Client CSV parser tests.
"""

from app.utils.csv_parser import (
    clients_to_csv,
    generate_sample_csv,
    is_valid_phone,
    parse_csv,
    parse_csv_line,
)


def test_parses_valid_rows_with_header_aliases():
    content = (
        "Client Name,Email Address,Company,Phone Number,VAT\n"
        "Jane Doe,jane@example.com,Doe Ltd,+1 555 123 4567,DE123456789\n"
        "John Roe,,,,\n"
    )

    result = parse_csv(content)

    assert result.success
    assert result.total_rows == 2
    assert result.valid_rows == 2
    assert result.clients[0].name == "Jane Doe"
    assert result.clients[0].company_name == "Doe Ltd"
    assert result.clients[0].vat_number == "DE123456789"
    assert result.clients[1].email is None


def test_empty_file():
    result = parse_csv("\n\n")

    assert not result.success
    assert result.errors[0].field == "file"


def test_missing_name_column():
    result = parse_csv("email,phone\na@b.com,5551234567\n")

    assert not result.success
    assert result.errors[0].row == 1
    assert result.errors[0].field == "header"
    assert result.clients == []
    assert result.total_rows == 1


def test_row_errors_are_numbered_from_two():
    content = "name,email\n,nobody@example.com\nBad Email,not-an-email\nGood,good@example.com\n"

    result = parse_csv(content)

    assert not result.success
    assert [(e.row, e.field) for e in result.errors] == [(2, "name"), (3, "email")]
    assert [c.name for c in result.clients] == ["Good"]


def test_duplicate_emails_are_reported():
    content = "name,email\nA,same@example.com\nB,SAME@example.com\nC,SAME@example.com\n"

    result = parse_csv(content)

    duplicate_errors = [e for e in result.errors if e.message.startswith("Duplicate email")]
    assert [e.row for e in duplicate_errors] == [3, 4]
    assert all("row 2" in e.message for e in duplicate_errors)
    assert result.duplicates == ["SAME@example.com"]
    # duplicates are flagged but still imported
    assert result.valid_rows == 3


def test_phone_and_vat_problems_are_warnings():
    content = "name,phone,vat number\nAcme,12,XX1\n"

    result = parse_csv(content)

    assert result.success
    assert result.valid_rows == 1
    assert {e.field for e in result.errors} == {"phone", "vat_number"}


def test_quoted_cells():
    assert parse_csv_line('"Doe, Jane","say ""hi""", plain ') == ["Doe, Jane", 'say "hi"', "plain"]


def test_phone_needs_seven_digits():
    assert is_valid_phone("(555) 123-4567")
    assert not is_valid_phone("123-45")


def test_sample_csv_parses_cleanly():
    result = parse_csv(generate_sample_csv())

    assert result.success
    assert result.errors == []
    assert [c.name for c in result.clients] == ["John Smith", "Jane Doe", "Bob Wilson"]
    assert result.valid_rows == result.total_rows == 3


def test_export_round_trips_names_with_commas():
    class Row:
        name = "Doe, Jane"
        email = "jane@example.com"
        company_name = None
        address = "1 Main St\nSpringfield"
        phone = None
        notes = None
        vat_number = None

    exported = clients_to_csv([Row()])

    assert exported.splitlines()[0].startswith("Name,Email")
    assert '"Doe, Jane"' in exported


def test_valid_and_invalid_rows_add_up_to_total():
    content = (
        "name,email,phone\n"
        "Good,good@example.com,\n"
        ",missing@example.com,\n"
        "Bad,not-an-email,\n"
        "Warned,warned@example.com,12\n"
        "Copy,GOOD@example.com,\n"
    )

    result = parse_csv(content)

    blocked_rows = {e.row for e in result.errors if e.field in ("name", "email")} - {
        e.row for e in result.errors if e.message.startswith("Duplicate email")
    }
    assert result.total_rows == 5
    assert len(blocked_rows) == 2
    assert len(result.clients) + len(blocked_rows) == result.total_rows


def test_overlong_fields_block_the_row():
    long_name = "A" * 300
    long_phone = "1" * 60
    content = f"name,email,phone,company\n{long_name},long@example.com,,\nBob,,{long_phone},\n"

    result = parse_csv(content)

    assert result.clients == []
    assert [(e.row, e.field) for e in result.errors if "at most" in e.message] == [(2, "name"), (3, "phone")]
    assert not result.success


def test_huge_cell_is_parsed_not_raised():
    result = parse_csv("name,notes\nBob," + "x" * 200_000)

    assert result.success
    assert result.valid_rows == 1
    assert len(result.clients[0].notes) == 200_000


def test_quote_toggles_anywhere_in_a_cell():
    assert parse_csv_line('John O"Brien, Jr",x') == ["John OBrien, Jr", "x"]
