"""
tags/models.py -- Domain dataclass for tags.

Pure data container with zero logic. Persistence lives in tags/store.py and
the HTTP contract in api/models.py.
"""

from dataclasses import dataclass


@dataclass
class Tag:
    """A label administrators attach to content.

    icon is a CSS class name for the tag's icon; empty string means none.
    id is None before the record is written to the database.
    """

    tag_name: str
    icon: str = ""
    id: int | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, refreshed on every update
