from __future__ import annotations

import itertools
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional

_ids = itertools.count(1)


def next_id() -> int:
    """Issue a new entity id. Ids are never handed out twice in a process."""
    return next(_ids)


class Mode(str, Enum):
    PHYLOGRAM = "PHYLO"
    CLADOGRAM = "CLADO"

    @classmethod
    def coerce(cls, value) -> "Mode":
        # anything starting with "c" draws as a cladogram, like the layout pass
        if str(getattr(value, "value", value)).lower().startswith("c"):
            return cls.CLADOGRAM
        return cls.PHYLOGRAM


class Shape(str, Enum):
    RECT = "RECT"
    CURVY = "CURVY"
    DIAG = "DIAG"


class StyleStore:
    """Drawing attributes of many entities, indexed by entity id."""

    def __init__(self):
        self._data: Dict[int, Dict[str, Any]] = {}

    def set(self, entity_id: int, field: str, value) -> None:
        self._data.setdefault(entity_id, {})[field] = value

    def get(self, entity_id: int, field: str, default=None):
        return self._data.get(entity_id, {}).get(field, default)

    def fields(self, entity_id: int) -> Dict[str, Any]:
        return dict(self._data.get(entity_id, {}))

    def release(self, entity_id: int) -> Dict[str, Any]:
        return self._data.pop(entity_id, {})

    def adopt(self, entity) -> None:
        """Move `entity`'s fields from its current store into this one."""
        current = entity._store
        if current is self:
            return
        moved = current.release(entity.id)
        if moved:
            self._data.setdefault(entity.id, {}).update(moved)
        entity._store = self

    def __contains__(self, entity_id) -> bool:
        return entity_id in self._data

    def __len__(self) -> int:
        return len(self._data)


class StyleField:
    """Attribute stored in the owner's StyleStore under the owner's id."""

    def __init__(self, default=None):
        self.default = default
        self.name = None

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return obj._store.get(obj.id, self.name, self.default)

    def __set__(self, obj, value):
        obj._store.set(obj.id, self.name, value)


@dataclass
class TreeStyle:
    """Bundle of DrawableTree options. Fields left as None are not applied."""

    width: Optional[float] = None
    height: Optional[float] = None
    mode: Optional[str] = None
    shape: Optional[str] = None
    node_radius: Optional[float] = None
    node_colour: Optional[str] = None
    node_shape: Optional[str] = None
    node_image: Optional[str] = None
    branch_color: Optional[str] = None
    branch_shape: Optional[str] = None
    branch_width: Optional[float] = None
    branch_style: Optional[str] = None
    font_face: Optional[str] = None
    font_size: Optional[float] = None
    font_style: Optional[str] = None
    margin: Optional[float] = None
    margin_top: Optional[float] = None
    margin_bottom: Optional[float] = None
    margin_left: Optional[float] = None
    margin_right: Optional[float] = None
    padding: Optional[float] = None
    padding_top: Optional[float] = None
    padding_bottom: Optional[float] = None
    padding_left: Optional[float] = None
    padding_right: Optional[float] = None
    text_horiz_offset: Optional[float] = None
    text_vert_offset: Optional[float] = None

    def as_options(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
