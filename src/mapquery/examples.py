"""
Example records for demos and tests.

Builds a small nested record covering the common field kinds: a fixed
sequence, an internal field, lists of scalars and of nested records, an
optional pointer, and a boolean flag.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from mapquery.tags import param


@dataclass
class CoolPart:
    name: str = ""
    id: int = param("ID", json="ID", default=0)
    parent_id: Optional[int] = param("ParentID", json="ParentID,omitempty", default=None)


@dataclass
class CoolRoot:
    names: Tuple[str, str] = param("Names", default=("", ""))
    _secret: str = ""
    id: int = param("ID", default=0)
    cool_parts: List[CoolPart] = param("CoolParts", default_factory=list)
    aliases: List[str] = param("Aliases", "alias", default_factory=list)
    is_cool: bool = param("IsCool", default=False)


def build_example_root() -> CoolRoot:
    return CoolRoot(
        names=("Mr", "Cool"),
        _secret="hush",
        id=32,
        cool_parts=[
            CoolPart(name="Very cool", id=12),
            CoolPart(name="Not so cool", id=45),
        ],
        aliases=["Coolus Maximus", "Cool Dude"],
        is_cool=True,
    )
