"""County → province lookup for delivery coverage checks.

Kenya's 47 counties mapped to the former provinces that sellers declare as
delivery regions. Nairobi is folded into Central, matching how sellers were
onboarded.
"""

from dataclasses import dataclass

from checkout.errors import InvalidLocation

PROVINCES = (
    "Central",
    "Coast",
    "Eastern",
    "North Eastern",
    "Nyanza",
    "Rift Valley",
    "Western",
)

COUNTY_TO_PROVINCE = {
    # Central
    "Kiambu": "Central",
    "Kirinyaga": "Central",
    "Murang'a": "Central",
    "Nyandarua": "Central",
    "Nyeri": "Central",
    # Coast
    "Kilifi": "Coast",
    "Kwale": "Coast",
    "Lamu": "Coast",
    "Mombasa": "Coast",
    "Taita-Taveta": "Coast",
    "Tana River": "Coast",
    # Eastern
    "Embu": "Eastern",
    "Isiolo": "Eastern",
    "Kitui": "Eastern",
    "Machakos": "Eastern",
    "Makueni": "Eastern",
    "Marsabit": "Eastern",
    "Meru": "Eastern",
    "Tharaka-Nithi": "Eastern",
    # North Eastern
    "Garissa": "North Eastern",
    "Mandera": "North Eastern",
    "Wajir": "North Eastern",
    # Nyanza
    "Homa Bay": "Nyanza",
    "Kisii": "Nyanza",
    "Kisumu": "Nyanza",
    "Migori": "Nyanza",
    "Nyamira": "Nyanza",
    "Siaya": "Nyanza",
    # Rift Valley
    "Baringo": "Rift Valley",
    "Bomet": "Rift Valley",
    "Elgeyo-Marakwet": "Rift Valley",
    "Kajiado": "Rift Valley",
    "Kericho": "Rift Valley",
    "Laikipia": "Rift Valley",
    "Nakuru": "Rift Valley",
    "Nandi": "Rift Valley",
    "Narok": "Rift Valley",
    "Samburu": "Rift Valley",
    "Trans-Nzoia": "Rift Valley",
    "Turkana": "Rift Valley",
    "Uasin Gishu": "Rift Valley",
    "West Pokot": "Rift Valley",
    # Western
    "Bungoma": "Western",
    "Busia": "Western",
    "Kakamega": "Western",
    "Vihiga": "Western",
    # Nairobi
    "Nairobi": "Central",
}

COUNTIES = tuple(COUNTY_TO_PROVINCE)


@dataclass(frozen=True)
class DeliveryLocation:
    county: str
    province: str


def resolve_province(county: str | None) -> str:
    """Return the province a county belongs to, or raise InvalidLocation."""
    name = county.strip() if isinstance(county, str) else county
    province = COUNTY_TO_PROVINCE.get(name) if name else None
    if province is None:
        raise InvalidLocation(county)
    return province


def resolve_location(county: str | None) -> DeliveryLocation:
    province = resolve_province(county)
    return DeliveryLocation(county=county.strip(), province=province)
