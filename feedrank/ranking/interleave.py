"""
Post/reel interleaving as a weighted round-robin policy.

The ranked sequence is split into a primary stream (non-reels) and a
secondary stream (reels). The policy emits `run_length` primary items, then
one secondary item, and repeats while the secondary quota lasts:

  quota = max(1, floor(page_size × secondary_share))

When the secondary stream or its quota runs out, the rest of the primary
stream follows. Secondary items still left once the primary stream is empty
are appended at the end, so nothing is dropped and paging stays stable.
"""
import math
from typing import Callable, Sequence, TypeVar

T = TypeVar("T")


class InterleavePolicy:
    def __init__(self, run_length: int = 3, secondary_share: float = 0.3) -> None:
        if run_length < 1:
            raise ValueError("run_length must be >= 1")
        self.run_length = run_length
        self.secondary_share = secondary_share

    def quota(self, page_size: int) -> int:
        return max(1, math.floor(page_size * self.secondary_share))

    def merge(self, primary: Sequence[T], secondary: Sequence[T], page_size: int) -> list[T]:
        quota = self.quota(page_size)
        out: list[T] = []
        p = s = 0
        while p < len(primary) and s < len(secondary) and s < quota:
            run = primary[p:p + self.run_length]
            out.extend(run)
            p += len(run)
            if len(run) < self.run_length:
                # primary ran dry mid-run; secondary supply is appended below
                break
            out.append(secondary[s])
            s += 1
        out.extend(primary[p:])
        out.extend(secondary[s:])
        return out

    def apply(
        self,
        items: Sequence[T],
        page_size: int,
        is_secondary: Callable[[T], bool],
    ) -> list[T]:
        """Split `items` (already ranked) by `is_secondary` and merge them."""
        primary = [i for i in items if not is_secondary(i)]
        secondary = [i for i in items if is_secondary(i)]
        return self.merge(primary, secondary, page_size)
