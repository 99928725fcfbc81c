"""
EU VAT number checks.

Format rules run locally; ``validate_vat_number`` asks the European
Commission's VIES service whether the number is registered.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.config import settings


logger = logging.getLogger(__name__)

EU_COUNTRY_CODES = (
    "AT", "BE", "BG", "CY", "CZ", "DE", "DK", "EE", "EL", "ES", "FI", "FR",
    "HR", "HU", "IE", "IT", "LT", "LU", "LV", "MT", "NL", "PL", "PT", "RO",
    "SE", "SI", "SK",
)

FORMAT_PATTERNS: dict[str, re.Pattern] = {
    "AT": re.compile(r"^U\d{8}$"),
    "BE": re.compile(r"^0?\d{9,10}$"),
    "BG": re.compile(r"^\d{9,10}$"),
    "CY": re.compile(r"^\d{8}[A-Z]$"),
    "CZ": re.compile(r"^\d{8,10}$"),
    "DE": re.compile(r"^\d{9}$"),
    "DK": re.compile(r"^\d{8}$"),
    "EE": re.compile(r"^\d{9}$"),
    "EL": re.compile(r"^\d{9}$"),
    "ES": re.compile(r"^[A-Z0-9]\d{7}[A-Z0-9]$"),
    "FI": re.compile(r"^\d{8}$"),
    "FR": re.compile(r"^[A-Z0-9]{2}\d{9}$"),
    "HR": re.compile(r"^\d{11}$"),
    "HU": re.compile(r"^\d{8}$"),
    "IE": re.compile(r"^\d[A-Z0-9+*]\d{5}[A-Z]$|^\d{7}[A-Z]{1,2}$"),
    "IT": re.compile(r"^\d{11}$"),
    "LT": re.compile(r"^\d{9}$|^\d{12}$"),
    "LU": re.compile(r"^\d{8}$"),
    "LV": re.compile(r"^\d{11}$"),
    "MT": re.compile(r"^\d{8}$"),
    "NL": re.compile(r"^\d{9}B\d{2}$"),
    "PL": re.compile(r"^\d{10}$"),
    "PT": re.compile(r"^\d{9}$"),
    "RO": re.compile(r"^\d{2,10}$"),
    "SE": re.compile(r"^\d{12}$"),
    "SI": re.compile(r"^\d{8}$"),
    "SK": re.compile(r"^\d{10}$"),
}


@dataclass
class VATValidationResult:
    valid: bool
    country_code: Optional[str] = None
    vat_number: Optional[str] = None
    name: Optional[str] = None
    address: Optional[str] = None
    request_date: Optional[str] = None
    error_message: Optional[str] = None


def parse_vat_number(vat_number: str) -> Optional[tuple[str, str]]:
    """
    Split a VAT number into ``(country_code, number)``.

    Greece is accepted as GR and normalized to VIES's EL. Returns None when
    the prefix is not an EU member state.
    """
    cleaned = re.sub(r"\s", "", vat_number).upper()
    if len(cleaned) < 3:
        return None

    country_code, number = cleaned[:2], cleaned[2:]
    if country_code == "GR":
        country_code = "EL"

    if country_code not in EU_COUNTRY_CODES:
        return None
    return country_code, number


def is_valid_vat_format(vat_number: str) -> bool:
    """Country-specific shape check, no network call."""
    parsed = parse_vat_number(vat_number)
    if parsed is None:
        return False

    country_code, number = parsed
    if not 2 <= len(number) <= 15:
        return False

    pattern = FORMAT_PATTERNS.get(country_code)
    return pattern is None or bool(pattern.match(number))


async def validate_vat_number(
    vat_number: str,
    client: httpx.AsyncClient | None = None,
) -> VATValidationResult:
    """
    Look the number up in VIES.

    Never raises: service and network failures come back as an invalid
    result with ``error_message`` set.
    """
    parsed = parse_vat_number(vat_number)
    if parsed is None:
        return VATValidationResult(
            valid=False,
            error_message="Invalid VAT number format. Must start with a valid EU country code.",
        )

    country_code, number = parsed
    url = f"{settings.VIES_API_URL}/{country_code}/vat/{number}"

    own_client = client is None
    http = client or httpx.AsyncClient(timeout=settings.VIES_TIMEOUT_SECONDS)
    try:
        response = await http.get(url, headers={"Accept": "application/json"})
    except httpx.TimeoutException:
        logger.warning(f"VIES timeout for {country_code}{number}")
        return VATValidationResult(
            valid=False,
            country_code=country_code,
            vat_number=number,
            error_message="VIES service timeout. Please try again later.",
        )
    except httpx.HTTPError as exc:
        logger.warning(f"VIES request failed: {exc}")
        return VATValidationResult(
            valid=False,
            country_code=country_code,
            vat_number=number,
            error_message=f"Network error: {exc}",
        )
    finally:
        if own_client:
            await http.aclose()

    if response.status_code == 400:
        message = "Invalid VAT number format for this country."
    elif response.status_code == 404:
        message = "VAT number not found in VIES database."
    elif response.status_code >= 300:
        message = f"VIES service error: {response.status_code}"
    else:
        try:
            data = response.json()
        except ValueError:
            logger.warning(f"VIES returned a non-JSON response for {country_code}{number}")
            data = None

        if not isinstance(data, dict):
            message = "VIES service returned an unreadable response. Please try again later."
        elif data.get("isValid"):
            return VATValidationResult(
                valid=True,
                country_code=country_code,
                vat_number=number,
                name=data.get("name") or None,
                address=data.get("address") or None,
                request_date=data.get("requestDate"),
            )
        else:
            return VATValidationResult(
                valid=False,
                country_code=country_code,
                vat_number=number,
                error_message=data.get("userError") or "VAT number is not valid.",
                request_date=data.get("requestDate"),
            )

    return VATValidationResult(
        valid=False,
        country_code=country_code,
        vat_number=number,
        error_message=message,
    )
