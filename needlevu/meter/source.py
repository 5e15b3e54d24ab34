"""The engine's reference to the current sample source."""

from __future__ import annotations

from typing import NamedTuple, Protocol, Sequence


class SampleSource(Protocol):
    """Anything that can hand over the latest spectrum without blocking."""

    def get_latest_magnitudes(self) -> Sequence[int] | None: ...

    def stop(self) -> None: ...


class Attachment(NamedTuple):
    session_id: int
    source: SampleSource | None


class SourceSlot:
    """Holds the current (session id, source) pair.

    The pair is replaced as a single reference, so a reader sees either the
    old or the new source, never a mix. Session ids only grow: ``attach``
    refuses any id older than the latest ``claim``.
    """

    def __init__(self) -> None:
        self._latest_id = 0
        self._current = Attachment(0, None)

    @property
    def current(self) -> Attachment:
        return self._current

    @property
    def latest_id(self) -> int:
        return self._latest_id

    def is_current(self, session_id: int) -> bool:
        return session_id == self._latest_id

    def claim(self) -> tuple[int, SampleSource | None]:
        """Start a new session: detach the old source and hand it back for stopping."""
        self._latest_id += 1
        previous = self._current.source
        self._current = Attachment(self._latest_id, None)
        return self._latest_id, previous

    def attach(self, session_id: int, source: SampleSource) -> bool:
        if session_id != self._latest_id:
            return False
        self._current = Attachment(session_id, source)
        return True

    def release(self, session_id: int | None = None) -> SampleSource | None:
        """Detach the current source (only if it belongs to session_id, when given)."""
        current = self._current
        if session_id is not None and current.session_id != session_id:
            return None
        self._current = Attachment(current.session_id, None)
        return current.source
