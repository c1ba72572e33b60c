from __future__ import annotations

from typing import List, Optional, Tuple


class TokenCursor:
    """Forward-only cursor over the whitespace-separated groups of a report.

    The position starts before the first token (-1); ``advance`` moves it by one and
    ``peek`` looks at the following token without moving.
    """

    def __init__(self, text: Optional[str]):
        self._tokens: Tuple[str, ...] = tuple(t for t in (text or "").split() if t)
        self._index = -1

    @property
    def current(self) -> Optional[str]:
        if 0 <= self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    @property
    def position(self) -> int:
        return self._index

    def advance(self) -> Optional[str]:
        if self._index < len(self._tokens):
            self._index += 1
        return self.current

    def peek(self, offset: int = 1) -> Optional[str]:
        idx = self._index + offset
        if offset < 1 or idx >= len(self._tokens):
            return None
        return self._tokens[idx]

    def remaining(self) -> List[str]:
        return list(self._tokens[self._index + 1 :])

    def __len__(self) -> int:
        return len(self._tokens)
