from __future__ import annotations
from dataclasses import dataclass
from listmod.errors import NotFoundError


@dataclass(frozen=True)
class ListConfig:
    """
    Per-list knobs for the review pipeline.
    raw_footage_cutoff: levels at or above this placement (position <= cutoff) need raw footage.
    """
    id: str
    name: str
    raw_footage_cutoff: int = 400
    requires_completion_time: bool = False


CLASSIC = ListConfig(id="aredl", name="All Rated Extreme Demons List")
PLATFORMER = ListConfig(
    id="arepl",
    name="All Rated Extreme Platformer List",
    requires_completion_time=True,
)

LISTS: dict[str, ListConfig] = {lst.id: lst for lst in (CLASSIC, PLATFORMER)}


def get_list(list_id: str) -> ListConfig:
    try:
        return LISTS[list_id]
    except KeyError:
        raise NotFoundError(f"Unknown list: {list_id}") from None
