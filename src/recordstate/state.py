"""
RecordState: lifecycle flags and the dirty transition table.

Mixed into every Record and RecordArray. The flags are independent booleans
rather than a single enum:

- is_new: no primary key assigned yet (records only)
- is_loaded: populated from an external source
- is_dirty: mutated since the last load/save (emits the dirty signal)
- is_saving / is_error / errors: adapter round-trip status
- _is_ready: construction or bulk population finished; mutations while not
  ready never set is_dirty

Mutations reach _on_field_changed() through the owner's ChangeObserver.
Acknowledgements (did_save, did_fail, did_delete) are called by the adapter
once it has an outcome; nothing here interprets the adapter's handle.
"""
import logging
from typing import Any, Callable, ContextManager, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from recordstate.observer import ChangeObserver

logger = logging.getLogger(__name__)


class RecordState:
    """State flags plus the dirty signal that owners subscribe to."""

    _observer: 'ChangeObserver'

    def _init_state(self, is_new: bool = False) -> None:
        self.is_new = is_new
        self.is_loaded = False
        self._is_dirty = False
        self.is_saving = False
        self.is_error = False
        self.is_deleted = False
        self.errors: Optional[Any] = None
        self._is_ready = False

        # Dirty signal: callbacks receive the new is_dirty value
        self._on_dirty_changed_callbacks: List[Callable[[bool], None]] = []
        # Any flag change, for UI-style listeners
        self._on_state_changed_callbacks: List[Callable[[], None]] = []

    # ========== DIRTY SIGNAL ==========

    @property
    def is_dirty(self) -> bool:
        return self._is_dirty

    @is_dirty.setter
    def is_dirty(self, value: bool) -> None:
        value = bool(value)
        if value == self._is_dirty:
            return
        self._is_dirty = value
        logger.debug(f"[DIRTY] {self!r} is_dirty={value}")
        # Iterate over a copy: a callback may unsubscribe while we dispatch
        for callback in list(self._on_dirty_changed_callbacks):
            callback(value)
        self._notify_state_changed()

    def on_dirty_changed(self, callback: Callable[[bool], None]) -> None:
        """Subscribe to is_dirty transitions."""
        if callback not in self._on_dirty_changed_callbacks:
            self._on_dirty_changed_callbacks.append(callback)

    def off_dirty_changed(self, callback: Callable[[bool], None]) -> None:
        """Unsubscribe from is_dirty transitions."""
        if callback in self._on_dirty_changed_callbacks:
            self._on_dirty_changed_callbacks.remove(callback)

    def on_state_changed(self, callback: Callable[[], None]) -> None:
        """Subscribe to state change notifications (dirty, save, delete, errors)."""
        if callback not in self._on_state_changed_callbacks:
            self._on_state_changed_callbacks.append(callback)

    def off_state_changed(self, callback: Callable[[], None]) -> None:
        """Unsubscribe from state change notifications."""
        if callback in self._on_state_changed_callbacks:
            self._on_state_changed_callbacks.remove(callback)

    def _notify_state_changed(self) -> None:
        """Fire state change callbacks (best-effort)."""
        for callback in list(self._on_state_changed_callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Error in state_changed callback: {e}")

    # ========== CHANGE TRACKING ==========

    @property
    def is_ready(self) -> bool:
        return self._is_ready

    def notify_field_changed(self, name: str) -> None:
        """Single entry point every field accessor calls after a mutation."""
        self._observer.notify(name)

    def suspended_changes(self) -> ContextManager[None]:
        """Bracket a bulk assignment: not ready inside, ready again on exit."""
        return self._observer.suspended()

    def _primary_key_name(self) -> Optional[str]:
        return None

    def _on_field_changed(self, key: str) -> None:
        """Mutation handler: the transition table for a change to field `key`."""
        is_new = self.is_new

        # No longer a new record once a primary key is assigned
        if is_new and key == self._primary_key_name():
            self.is_new = False
            is_new = False
            logger.debug(f"[STATE] {self!r} acquired identity via '{key}'")

        if self._is_ready and (is_new or self.is_loaded):
            self.is_dirty = True
        elif not self._is_ready:
            logger.debug(f"[SUSPEND] {type(self).__name__}.{key} changed while not ready")

    # ========== ACKNOWLEDGEMENTS ==========

    def begin_saving(self) -> None:
        self.is_saving = True
        self._notify_state_changed()

    def did_save(self) -> None:
        """Apply a successful save reported by the adapter."""
        self._acknowledge_save(self.is_new)

    def _acknowledge_save(self, was_new: bool) -> None:
        self.is_saving = False
        self.is_error = False
        self.errors = None
        if was_new:
            self.is_new = False
            self.is_loaded = True
        self.is_dirty = False
        self._notify_state_changed()

    def did_fail(self, errors: Any = None) -> None:
        """Apply a failed round-trip. Never a success transition."""
        self.is_saving = False
        self.is_error = True
        self.errors = errors
        logger.debug(f"[STATE] {self!r} failed: {errors!r}")
        self._notify_state_changed()

    def did_delete(self) -> None:
        """Terminal: the instance no longer tracks changes."""
        self.is_saving = False
        self.is_deleted = True
        self._observer.teardown()
        self._notify_state_changed()

    def clear_errors(self) -> 'RecordState':
        self.is_error = False
        self.errors = None
        self._notify_state_changed()
        return self

    def copy_state(self, target: 'RecordState') -> 'RecordState':
        """Transfer the persistence flags onto target and return it."""
        target.is_new = self.is_new
        target.is_loaded = self.is_loaded
        target.is_error = self.is_error
        target.errors = self.errors
        target.is_dirty = self.is_dirty
        return target
