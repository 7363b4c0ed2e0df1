"""
Translate PlayFab latency regions into Gameye location keys.

See https://docs.gameye.com/docs/choosing-your-server-locations for the
location keys Gameye offers.
"""
from typing import Dict, Iterable, List, Optional

# Regions mapped to None are PlayFab regions with no Gameye location
# configured for this title.
DEFAULT_REGION_LOCATIONS: Dict[str, Optional[str]] = {
    'ChinaEast2': 'china-east',
    'ChinaNorth2': 'china-north',
    'NorthEurope': None,
    'WestEurope': None,
    'AustraliaEast': None,
    'AustraliaSoutheast': None,
    'SoutheastAsia': None,
    'BrazilSouth': None,
    'NorthCentralUs': None,
    'CentralUs': None,
    'SouthCentralUs': None,
    'EastAsia': None,
    'JapanEast': None,
    'JapanWest': None,
    'EastUs': None,
    'EastUs2': None,
    'SouthAfricaNorth': None,
    'WestUs': None,
}


class RegionMapper:
    """Maps matchmaking regions to hosting locations using a fixed table."""

    def __init__(self, table: Dict[str, Optional[str]] = None):
        self.table = dict(DEFAULT_REGION_LOCATIONS if table is None else table)

    def map(self, regions: Iterable[str]) -> List[str]:
        """Order-preserving, deduplicated locations for the given regions.

        Unknown or unsupported regions are skipped. An empty result means
        the request carries no location preference.
        """
        locations = []
        for region in regions or ():
            location = self.table.get(region)
            if location and location not in locations:
                locations.append(location)
        return locations

    def supports(self, region: str) -> bool:
        return bool(self.table.get(region))


_default_mapper = RegionMapper()


def map_regions(regions: Iterable[str]) -> List[str]:
    return _default_mapper.map(regions)
