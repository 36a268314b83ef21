"""
The finalizer list of an object behaves as a set, but its order is kept so that
writes back to the store only ever change the token being added or removed
"""

# Standard
from typing import Iterable, Iterator, List, Optional


class FinalizerSet:
    """Set of finalizer tokens with a stable insertion order"""

    def __init__(self, finalizers: Optional[Iterable[str]] = None):
        self._tokens: List[str] = []
        for token in finalizers or []:
            self.add(token)

    def add(self, token: str) -> bool:
        """Insert the token if absent

        Returns:
            changed:  bool
                True if the token was not already present
        """
        if token in self._tokens:
            return False
        self._tokens.append(token)
        return True

    def remove(self, token: str) -> bool:
        """Remove the token if present

        Returns:
            changed:  bool
                True if the token was present
        """
        if token not in self._tokens:
            return False
        self._tokens.remove(token)
        return True

    def to_list(self) -> List[str]:
        return list(self._tokens)

    def __contains__(self, token: str) -> bool:
        return token in self._tokens

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __eq__(self, other) -> bool:
        if isinstance(other, FinalizerSet):
            return self._tokens == other._tokens
        return NotImplemented

    def __repr__(self) -> str:
        return f"FinalizerSet({self._tokens})"
