"""
ChangeObserver: turns "a declared field changed" into one handler call.

Each Record (and RecordArray) owns one observer. Field accessors report
mutations through notify(); relationship targets are watched so that a
related record becoming dirty is reported as a change of the relationship
field on the owner.

Invariants:
- Only the false -> true edge of a target's dirty signal is forwarded.
- Targets hold a weak reference to the observer, never to the owner.
- A dispatch already running for a key is not re-entered.
- After teardown() every notification is dropped.
- suspended() always restores readiness, including when the body raises.
"""
import logging
import weakref
from contextlib import contextmanager
from typing import Callable, Dict, Generator, Set, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from recordstate.state import RecordState

logger = logging.getLogger(__name__)


class ChangeObserver:
    """Delivers field notifications and relationship dirtiness to a handler."""

    def __init__(self, owner: 'RecordState', handler: Callable[[str], None]):
        self._owner_ref = weakref.ref(owner)
        self._handler_ref = weakref.WeakMethod(handler)
        self._subscriptions: Dict[str, Tuple['RecordState', Callable[[bool], None]]] = {}
        self._dispatching: Set[str] = set()
        self._suspend_depth = 0
        self._closed = False

    @property
    def is_suspended(self) -> bool:
        return self._suspend_depth > 0

    @property
    def is_closed(self) -> bool:
        return self._closed

    def notify(self, key: str) -> None:
        """Report a mutation of `key` to the owner's handler."""
        if self._closed:
            logger.debug(f"Ignoring change to '{key}' after teardown")
            return
        if key in self._dispatching:
            return
        handler = self._handler_ref()
        if handler is None:
            return

        self._dispatching.add(key)
        try:
            handler(key)
        finally:
            self._dispatching.discard(key)

    # ========== RELATIONSHIP SUBSCRIPTIONS ==========

    def watch(self, key: str, target: 'RecordState') -> None:
        """Forward target's dirty signal as a change of `key`.

        Replaces any previous subscription for `key`. Passing None only
        removes the old subscription.
        """
        current = self._subscriptions.get(key)
        if current is not None and current[0] is target:
            return
        self.unwatch(key)
        if target is None or self._closed:
            return

        observer_ref = weakref.ref(self)

        def on_target_dirty(is_dirty: bool) -> None:
            observer = observer_ref()
            if observer is not None and is_dirty:
                observer.notify(key)

        target.on_dirty_changed(on_target_dirty)
        self._subscriptions[key] = (target, on_target_dirty)

    def unwatch(self, key: str) -> None:
        subscription = self._subscriptions.pop(key, None)
        if subscription is not None:
            target, callback = subscription
            target.off_dirty_changed(callback)

    def watched(self, key: str) -> 'RecordState':
        subscription = self._subscriptions.get(key)
        return subscription[0] if subscription is not None else None

    def teardown(self) -> None:
        """Detach from every target and drop all later notifications."""
        for key in list(self._subscriptions):
            self.unwatch(key)
        self._closed = True
        owner = self._owner_ref()
        logger.debug(f"Observer torn down for {type(owner).__name__ if owner is not None else '<collected>'}")

    # ========== SUSPENSION ==========

    @contextmanager
    def suspended(self) -> Generator[None, None, None]:
        """Begin/end bracket for bulk assignment.

        Inside the block the owner is not ready, so notifications are observed
        but never set is_dirty. Nested blocks are supported; only the
        outermost exit marks the owner ready.
        """
        owner = self._owner_ref()
        self._suspend_depth += 1
        if owner is not None:
            owner._is_ready = False
        try:
            yield
        finally:
            self._suspend_depth -= 1
            if self._suspend_depth == 0 and owner is not None:
                owner._is_ready = True
