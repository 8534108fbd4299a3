"""
Width markers for numeric fields.

Python has one ``int``, one ``float`` and one ``complex``. Fields that must
respect a narrower wire type are annotated with one of the aliases below:

    @dataclass
    class Page:
        size: Uint16 = 0
        ratio: Float32 = 0.0

The alias is a ``typing.Annotated`` wrapper, so type checkers still see the
plain builtin type.
"""

from dataclasses import dataclass
from typing import Annotated


@dataclass(frozen=True)
class Width:
    """Bit width and signedness of a numeric annotation."""

    bits: int
    signed: bool = True


Int8 = Annotated[int, Width(8)]
Int16 = Annotated[int, Width(16)]
Int32 = Annotated[int, Width(32)]
Int64 = Annotated[int, Width(64)]

Uint = Annotated[int, Width(64, signed=False)]
Uint8 = Annotated[int, Width(8, signed=False)]
Uint16 = Annotated[int, Width(16, signed=False)]
Uint32 = Annotated[int, Width(32, signed=False)]
Uint64 = Annotated[int, Width(64, signed=False)]

Float32 = Annotated[float, Width(32)]
Float64 = Annotated[float, Width(64)]

Complex64 = Annotated[complex, Width(64)]
Complex128 = Annotated[complex, Width(128)]
