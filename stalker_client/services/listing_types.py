"""
Listing resource types and their per-type request defaults.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable

from stalker_client.schemas import Channel, VodItem
from stalker_client.services.payload_parsing import parse_channel, parse_vod_item


# Compatibility assumption: portals serve 14 items per full page. A shorter
# page is treated as the last one; the API reports no reliable total count.
FULL_PAGE_SIZE = 14

# First page index sent as 'p'.
PAGE_ORIGIN = 1

ALL_ITEMS_FILTER = "*"


class ResourceType(str, enum.Enum):
    ITV = "itv"
    VOD = "vod"


@dataclass(slots=True, frozen=True)
class ListingDefaults:
    """Fixed get_ordered_list parameters for one resource type."""
    sort_by: str
    fixed_params: tuple[tuple[str, str], ...]
    filter_param: str
    parse_item: Callable[[dict[str, Any]], Channel | VodItem]

    def build_params(self, page: int, filter_id: str | None = None) -> dict[str, str]:
        params = {"p": str(page), "sortby": self.sort_by}
        params.update(self.fixed_params)
        if filter_id and filter_id != ALL_ITEMS_FILTER:
            params[self.filter_param] = filter_id
        return params


LISTING_DEFAULTS: dict[ResourceType, ListingDefaults] = {
    ResourceType.ITV: ListingDefaults(
        sort_by="number",
        fixed_params=(("fav", "0"), ("hd", "0")),
        filter_param="genre",
        parse_item=parse_channel,
    ),
    ResourceType.VOD: ListingDefaults(
        sort_by="added",
        fixed_params=(("fav", "0"), ("not_ended", "0")),
        filter_param="category",
        parse_item=parse_vod_item,
    ),
}


__all__ = [
    "ALL_ITEMS_FILTER",
    "FULL_PAGE_SIZE",
    "LISTING_DEFAULTS",
    "ListingDefaults",
    "PAGE_ORIGIN",
    "ResourceType",
]
