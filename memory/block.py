from __future__ import annotations
from dataclasses import dataclass

from memory.errors import InvalidArgumentError


@dataclass(eq=False)
class Block:
    """Contiguous address range [base, base+length).

    Compared by identity: two blocks with the same base and length are
    still different entries in a BlockList.
    """
    base: int
    length: int

    def __post_init__(self):
        if self.base < 0 or self.length <= 0:
            raise InvalidArgumentError(f"invalid block base={self.base} length={self.length}")

    @property
    def end(self) -> int:
        return self.base + self.length

    def as_tuple(self) -> tuple[int, int]:
        return (self.base, self.length)

    def __str__(self) -> str:
        return f"({self.base} , {self.length})"
