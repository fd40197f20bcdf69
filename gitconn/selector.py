"""Select the connection configuration registered for a URL."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, TypeVar

from .templates import UriTemplate, compile_template

LOG = logging.getLogger(__name__)

ConfigT = TypeVar("ConfigT")


class RegistryFrozenError(RuntimeError):
    """Raised when registering a template after the selector was frozen."""


@dataclass(frozen=True, slots=True)
class Resolved(Generic[ConfigT]):
    """A single template matched the URL."""

    template: str
    configuration: ConfigT


@dataclass(frozen=True, slots=True)
class NotFound:
    """No registered template matches the URL."""

    url: str


@dataclass(frozen=True, slots=True)
class Ambiguous:
    """Several templates match the URL and none of them is an exact URL."""

    url: str
    candidates: tuple[str, ...]


Resolution = Resolved[ConfigT] | NotFound | Ambiguous
ResolutionListener = Callable[[NotFound | Ambiguous], None]


@dataclass(frozen=True, slots=True)
class _Entry(Generic[ConfigT]):
    template: UriTemplate
    configuration: ConfigT


class ConnectionSelector(Generic[ConfigT]):
    """Registry of URI templates mapped to opaque connection configurations.

    Templates are compiled when registered, so a malformed template fails at
    setup time and leaves the registry untouched. Registration order is kept
    and reported in :class:`Ambiguous` results.

    Writers serialize on a lock and publish a fresh tuple of entries; readers
    work on whichever tuple was current when ``resolve`` started. Listeners
    are stored the same way. Concurrent ``resolve`` calls are therefore safe,
    even while another thread registers. A failing listener is logged and
    does not affect the returned result.
    Call :meth:`freeze` once setup is complete to reject late registrations.
    """

    def __init__(self) -> None:
        self._entries: tuple[_Entry[ConfigT], ...] = ()
        self._lock = threading.Lock()
        self._frozen = False
        self._listeners: tuple[ResolutionListener, ...] = ()

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def templates(self) -> tuple[str, ...]:
        """Registered template strings in registration order."""

        return tuple(entry.template.template for entry in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, template: object) -> bool:
        return any(entry.template.template == template for entry in self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.templates)

    def get(self, template: str) -> ConfigT | None:
        """Return the configuration stored under *template*, if any."""

        for entry in self._entries:
            if entry.template.template == template:
                return entry.configuration
        return None

    def register(self, template: str, configuration: ConfigT) -> None:
        """Store *configuration* under *template*, replacing any previous value."""

        compiled = compile_template(template)
        entry = _Entry(compiled, configuration)
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(f"Cannot register {template!r}: selector is frozen")
            entries = list(self._entries)
            for index, existing in enumerate(entries):
                if existing.template.template == template:
                    entries[index] = entry
                    break
            else:
                entries.append(entry)
            self._entries = tuple(entries)

    def freeze(self) -> None:
        """Reject any further registration."""

        with self._lock:
            self._frozen = True

    def subscribe(self, listener: ResolutionListener) -> Callable[[], None]:
        """Receive ``NotFound`` and ``Ambiguous`` outcomes; returns an unsubscribe handle."""

        with self._lock:
            self._listeners = (*self._listeners, listener)

        def _unsubscribe() -> None:
            with self._lock:
                self._listeners = tuple(item for item in self._listeners if item is not listener)

        return _unsubscribe

    def resolve(self, url: str) -> Resolution[ConfigT]:
        """Pick the configuration for *url*.

        An exact (placeholder-free) template wins over templated ones when
        several match. Any other overlap is reported as :class:`Ambiguous`.
        """

        candidates = [entry for entry in self._entries if entry.template.matches(url)]
        if len(candidates) == 1:
            winner = candidates[0]
            return Resolved(winner.template.template, winner.configuration)
        if not candidates:
            outcome: NotFound | Ambiguous = NotFound(url)
        else:
            exact = [entry for entry in candidates if entry.template.is_exact]
            if len(exact) == 1:
                return Resolved(exact[0].template.template, exact[0].configuration)
            outcome = Ambiguous(url, tuple(entry.template.template for entry in candidates))
        self._emit(outcome)
        return outcome

    def lookup(self, url: str) -> ConfigT | None:
        """Return the configuration for *url*, or ``None`` when it cannot be decided."""

        outcome = self.resolve(url)
        if isinstance(outcome, Resolved):
            return outcome.configuration
        return None

    def _emit(self, outcome: NotFound | Ambiguous) -> None:
        for listener in self._listeners:
            try:
                listener(outcome)
            except Exception:
                LOG.exception("Resolution listener failed", extra={"url": outcome.url})


__all__ = [
    "Ambiguous",
    "ConnectionSelector",
    "NotFound",
    "RegistryFrozenError",
    "Resolution",
    "ResolutionListener",
    "Resolved",
]
