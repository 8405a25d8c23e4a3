"""Partial updates: non-null fields of a patch overwrite, null leaves the existing value"""
from datetime import datetime
from typing import Callable, Optional, Tuple, TypeVar

from pydantic import BaseModel

from domain.exceptions import InvalidRangeError
from domain.value_objects import Interval, as_utc

T = TypeVar("T", bound=BaseModel)


def make_merger(*fields: str) -> Callable[[T, BaseModel], T]:
    """Build a merge function for one entity type over the given fields.

    The returned function mutates and returns ``target``. Only the listed
    fields are considered; anything else on the patch is ignored.
    """
    def merge(target: T, patch: BaseModel) -> T:
        for name in fields:
            value = getattr(patch, name, None)
            if value is not None:
                setattr(target, name, value)
        return target

    merge.fields = fields
    return merge


merge_room = make_merger(
    "title", "subtitle", "description", "price", "capacity", "location", "room_type"
)

merge_user = make_merger("email", "full_name")


def merge_interval(
    current: Interval,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> Tuple[Interval, bool]:
    """Apply optional new endpoints to an interval.

    Returns the resulting interval and whether it differs from ``current``.
    Raises InvalidRangeError if the merged endpoints are not ordered.
    """
    new_start = current.start if start is None else as_utc(start)
    new_end = current.end if end is None else as_utc(end)
    if new_start >= new_end:
        raise InvalidRangeError(new_start, new_end)
    if new_start == current.start and new_end == current.end:
        return current, False
    return Interval(start=new_start, end=new_end), True
