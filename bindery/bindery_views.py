"""
A lazy splitting view over strings and other sequences.
"""
import collections.abc
from typing import Any, Iterator, List

from bindery.bindery_datatypes import StaticResolutionError


def _as_pattern(base: Any, pattern: Any):
    """Normalizes `pattern` to a sequence comparable against `base`'s elements."""
    if isinstance(base, (str, bytes, bytearray)):
        if isinstance(pattern, int) and isinstance(base, (bytes, bytearray)):
            return bytes([pattern])
        if not isinstance(pattern, (str, bytes, bytearray)) or isinstance(pattern, str) != isinstance(base, str):
            raise StaticResolutionError(
                f"Cannot split {type(base).__name__} on {type(pattern).__name__}"
            )
        return pattern
    if isinstance(pattern, collections.abc.Sequence) and not isinstance(pattern, (str, bytes)):
        return pattern
    return (pattern,)


def _find(base, pattern, start: int) -> int:
    """Index of the next occurrence of `pattern` in `base` at or after `start`, or -1."""
    if isinstance(base, (str, bytes, bytearray)):
        return base.find(pattern, start)
    m = len(pattern)
    for i in range(start, len(base) - m + 1):
        if all(base[i + k] == pattern[k] for k in range(m)):
            return i
    return -1


class SplitView:
    """Iterates the segments of `base` between occurrences of `pattern`.

    Sequence bases yield slices of the same type and can be iterated any
    number of times. Other iterables are consumed once, yield lists, and
    only support patterns of at most one element; a str or bytes pattern
    counts as its characters there.

    A leading delimiter gives a leading empty segment, consecutive
    delimiters give empty segments, a trailing delimiter gives nothing.
    An empty pattern splits into one-element segments.
    """
    def __init__(self, base: Any, pattern: Any):
        self._base = base
        self._pattern = _as_pattern(base, pattern)
        self._is_sequence = isinstance(base, collections.abc.Sequence)
        if not self._is_sequence:
            if not isinstance(base, collections.abc.Iterable):
                raise StaticResolutionError(f"Cannot split non-iterable {type(base).__name__}")
            if isinstance(pattern, (str, bytes, bytearray)):
                # Text patterns over a stream are matched character by character.
                self._pattern = tuple(pattern)
            if len(self._pattern) > 1:
                raise StaticResolutionError(
                    "Single-pass inputs can only be split on a pattern of at most one element"
                )

    @property
    def base(self) -> Any:
        return self._base

    @property
    def pattern(self) -> Any:
        return self._pattern

    def __iter__(self) -> Iterator[Any]:
        if self._is_sequence:
            return self._split_sequence()
        return self._split_stream()

    def _split_sequence(self):
        base, pattern = self._base, self._pattern
        n, m = len(base), len(pattern)
        cur = 0
        while cur < n:
            if m == 0:
                yield base[cur:cur + 1]
                cur += 1
                continue
            hit = _find(base, pattern, cur)
            if hit < 0:
                yield base[cur:]
                return
            yield base[cur:hit]
            cur = hit + m

    def _split_stream(self):
        it = iter(self._base)
        if len(self._pattern) == 0:
            for item in it:
                yield [item]
            return
        delim = self._pattern[0]
        segment: List[Any] = []
        started = False
        for item in it:
            started = True
            if item == delim:
                yield segment
                segment = []
                started = False
            else:
                segment.append(item)
        if started:
            yield segment

    def __repr__(self) -> str:
        return f"SplitView({self._base!r}, {self._pattern!r})"


def split_view(base: Any, pattern: Any) -> SplitView:
    return SplitView(base, pattern)
