"""
CSV parsing for client import.

Maps loosely named headers onto client fields, validates every row and
reports errors without raising, so the caller can show a full preview.
"""

import re
from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional


CLIENT_FIELDS = (
    "name",
    "email",
    "company_name",
    "address",
    "phone",
    "notes",
    "vat_number",
)

COLUMN_MAPPINGS: dict[str, str] = {
    "name": "name",
    "client name": "name",
    "client_name": "name",
    "contact name": "name",
    "contact_name": "name",
    "email": "email",
    "email address": "email",
    "email_address": "email",
    "company": "company_name",
    "company name": "company_name",
    "company_name": "company_name",
    "organization": "company_name",
    "address": "address",
    "street address": "address",
    "street_address": "address",
    "full address": "address",
    "phone": "phone",
    "phone number": "phone",
    "phone_number": "phone",
    "telephone": "phone",
    "mobile": "phone",
    "notes": "notes",
    "note": "notes",
    "comments": "notes",
    "vat": "vat_number",
    "vat number": "vat_number",
    "vat_number": "vat_number",
    "tax id": "vat_number",
    "tax_id": "vat_number",
}

CSV_HEADERS = ["Name", "Email", "Company Name", "Address", "Phone", "Notes", "VAT Number"]

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[\d\s\-()+.]+$")
VAT_RE = re.compile(r"^[A-Z]{2}[A-Z0-9]{8,12}$", re.IGNORECASE)
MIN_PHONE_DIGITS = 7

# Column sizes of the clients table
MAX_LENGTHS = {
    "name": 255,
    "email": 320,
    "company_name": 255,
    "phone": 50,
    "vat_number": 50,
}

# Errors on these fields keep the row out of the import.
BLOCKING_FIELDS = ("name", "email")


@dataclass
class ParsedClient:
    name: str
    email: Optional[str] = None
    company_name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    vat_number: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ParseError:
    row: int
    field: str
    message: str
    value: Optional[str] = None


@dataclass
class ParseResult:
    success: bool
    clients: list[ParsedClient] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)
    total_rows: int = 0
    valid_rows: int = 0
    duplicates: list[str] = field(default_factory=list)


def parse_csv_line(line: str) -> list[str]:
    """
    Split one CSV line into trimmed cells.

    A ``"`` toggles quoted mode wherever it appears and ``""`` inside
    quotes is a literal quote. Quoted newlines are not supported.
    """
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and line[i + 1:i + 2] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    cells.append("".join(current).strip())
    return cells


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def is_valid_phone(phone: str) -> bool:
    """Digits, spaces, dashes, dots, parentheses and ``+``, with at least 7 digits."""
    digits = re.sub(r"\D", "", phone)
    return bool(PHONE_RE.match(phone)) and len(digits) >= MIN_PHONE_DIGITS


def is_valid_vat_format(vat: str) -> bool:
    """Loose EU shape check: two letters then 8-12 letters or digits."""
    return bool(VAT_RE.match(re.sub(r"\s", "", vat)))


def parse_csv(content: str) -> ParseResult:
    """
    Parse a CSV export into clients.

    The first non-blank line is the header. Rows are numbered by their
    position among non-blank lines, so the first data row is row 2.

    Args:
        content: Raw CSV text

    Returns:
        ParseResult with valid clients, per-row errors and duplicate emails
    """
    lines = [line for line in re.split(r"\r?\n", content) if line.strip()]

    if not lines:
        return ParseResult(
            success=False,
            errors=[ParseError(row=0, field="file", message="CSV file is empty")],
        )

    headers = [h.lower().strip() for h in parse_csv_line(lines[0])]
    column_map: dict[int, str] = {
        index: COLUMN_MAPPINGS[header]
        for index, header in enumerate(headers)
        if header in COLUMN_MAPPINGS
    }

    if "name" not in column_map.values():
        return ParseResult(
            success=False,
            errors=[
                ParseError(
                    row=1,
                    field="header",
                    message=(
                        'Missing required "name" column. Expected column headers: '
                        "name, email, company, address, phone, notes, vat number"
                    ),
                )
            ],
            total_rows=len(lines) - 1,
        )

    clients: list[ParsedClient] = []
    errors: list[ParseError] = []
    seen_emails: dict[str, int] = {}
    duplicates: list[str] = []

    for row_number, line in enumerate(lines[1:], start=2):
        values = parse_csv_line(line.strip())
        data: dict[str, str] = {}
        for index, field_name in column_map.items():
            value = values[index].strip() if index < len(values) else ""
            if value:
                data[field_name] = value

        client = ParsedClient(name=data.pop("name", ""), **data)
        has_error = False

        for field_name, limit in MAX_LENGTHS.items():
            value = getattr(client, field_name)
            if value and len(value) > limit:
                errors.append(ParseError(
                    row=row_number,
                    field=field_name,
                    message=f"Must be at most {limit} characters",
                    value=value[:50],
                ))
                has_error = True

        if not client.name:
            errors.append(ParseError(row=row_number, field="name", message="Name is required"))
            has_error = True

        if client.email and not is_valid_email(client.email):
            errors.append(ParseError(
                row=row_number,
                field="email",
                message="Invalid email format",
                value=client.email,
            ))
            has_error = True

        if client.email:
            normalized = client.email.lower()
            if normalized in seen_emails:
                duplicates.append(client.email)
                errors.append(ParseError(
                    row=row_number,
                    field="email",
                    message=f"Duplicate email (first seen in row {seen_emails[normalized]})",
                    value=client.email,
                ))
            else:
                seen_emails[normalized] = row_number

        # Phone and VAT problems are warnings only
        if client.phone and not is_valid_phone(client.phone):
            errors.append(ParseError(
                row=row_number,
                field="phone",
                message="Invalid phone format",
                value=client.phone,
            ))

        if client.vat_number and not is_valid_vat_format(client.vat_number):
            errors.append(ParseError(
                row=row_number,
                field="vat_number",
                message="Invalid VAT number format (expected format: XX123456789)",
                value=client.vat_number,
            ))

        if not has_error:
            clients.append(client)

    return ParseResult(
        success=not any(e.field in BLOCKING_FIELDS for e in errors),
        clients=clients,
        errors=errors,
        total_rows=len(lines) - 1,
        valid_rows=len(clients),
        duplicates=list(dict.fromkeys(duplicates)),
    )


def _quote_cell(cell: str, quote_newlines: bool = True) -> str:
    specials = [",", '"'] + (["\n"] if quote_newlines else [])
    if any(ch in cell for ch in specials):
        return '"' + cell.replace('"', '""') + '"'
    return cell


def _render(rows: Iterable[list[str]], quote_newlines: bool = True) -> str:
    return "\n".join(
        ",".join(_quote_cell(cell, quote_newlines) for cell in row) for row in rows
    )


def generate_sample_csv() -> str:
    """Template CSV offered for download on the import screen."""
    sample_rows = [
        [
            "John Smith",
            "john@example.com",
            "Acme Corp",
            "123 Main St, New York, NY 10001",
            "+1 (555) 123-4567",
            "VIP client",
            "",
        ],
        [
            "Jane Doe",
            "jane@company.com",
            "Tech Solutions Ltd",
            "456 Oak Ave, San Francisco, CA 94102",
            "555-987-6543",
            "Monthly retainer",
            "DE123456789",
        ],
        [
            "Bob Wilson",
            "bob@startup.io",
            "Startup Inc",
            "789 Pine Rd, Austin, TX 78701",
            "",
            "New client",
            "",
        ],
    ]
    return _render([CSV_HEADERS, *sample_rows], quote_newlines=False)


def clients_to_csv(clients: Iterable) -> str:
    """
    Render clients as CSV.

    Accepts anything exposing the client field names as attributes
    (ParsedClient or the Client model).
    """
    rows = [
        [getattr(client, name, None) or "" for name in CLIENT_FIELDS]
        for client in clients
    ]
    return _render([CSV_HEADERS, *rows])
