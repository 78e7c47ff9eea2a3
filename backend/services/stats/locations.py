"""
ISO 3166 country and subdivision resolution for tax by location.

Billing addresses store the ISO codes (country 'US', region 'CA'). Callers
may pass a code or a name; anything pycountry does not know resolves to None.

    resolve_country('us')                    -> 'US'
    resolve_country('Germany')               -> 'DE'
    resolve_country('ZZ')                    -> None
    resolve_subdivision('US', 'California')  -> 'CA'
    resolve_subdivision('US', 'NOPE')        -> None
"""

from typing import Optional

import pycountry


def resolve_country(value: Optional[str]) -> Optional[str]:
    """Country code or name -> ISO 3166-1 alpha-2 code, or None if unknown."""
    if not value:
        return None
    try:
        return pycountry.countries.lookup(value.strip()).alpha_2
    except LookupError:
        return None


def resolve_subdivision(country: str, value: Optional[str]) -> Optional[str]:
    """
    Subdivision code or name within country -> region code, or None if unknown.

    The region code is the ISO 3166-2 code without the country part
    ('US-CA' -> 'CA').
    """
    if not country or not value:
        return None

    wanted = value.strip().upper()
    full_code = f"{country}-{wanted}"

    for subdivision in pycountry.subdivisions.get(country_code=country) or []:
        if subdivision.code.upper() == full_code or subdivision.name.upper() == wanted:
            return subdivision.code.split('-', 1)[1]
    return None
