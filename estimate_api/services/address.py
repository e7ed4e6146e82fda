import re
from dataclasses import dataclass
from typing import Optional

from ..core.errors import InvalidInput, NotFound
from ..data.base import GeocodeClient, GeocodeResult

# French postal codes are five digits
_POSTCODE = re.compile(r"\b(\d{5})\b")
# Leading house number, optionally followed by bis/ter/quater or a letter
_HOUSE_NUMBER = re.compile(r"^\s*\d+\s*(?:bis|ter|quater|[a-z])?\b\s*,?\s*", re.IGNORECASE)

@dataclass(frozen=True)
class AddressParts:
    street_name: Optional[str] = None
    postal_code: Optional[str] = None

def parse_address(text: Optional[str]) -> AddressParts:
    """
    Split a free-text address into street name and postal code.

    "12 bis rue de la Paix, 77400 Lagny-sur-Marne"
        -> AddressParts(street_name="rue de la Paix", postal_code="77400")

    Either part is None when it cannot be found. Never raises.
    """
    if not text or not text.strip():
        return AddressParts()

    match = _POSTCODE.search(text)
    postal_code = match.group(1) if match else None

    # The street is whatever precedes the first comma or the postal code
    head = text
    if match:
        head = head[:match.start()]
    head = _HOUSE_NUMBER.sub("", head, count=1)
    head = head.split(",")[0]
    street = " ".join(head.split()).strip(" ,-")
    # A bare number or one-letter remainder is not a street
    if len(street) < 3 or not any(ch.isalpha() for ch in street):
        street = None
    return AddressParts(street_name=street, postal_code=postal_code)

async def resolve_address(geo: GeocodeClient, address: Optional[str]) -> GeocodeResult:
    """Geocode ``address`` and keep only the best-ranked match."""
    if address is None or not address.strip():
        raise InvalidInput("address missing")
    matches = await geo.search(address.strip(), limit=1)
    if not matches:
        raise NotFound("address not found, try a more specific address")
    return matches[0]
