"""Auto-run scheduling for a simulation session.

The UI used to re-arm `window.after` from inside its own step callback. The
AutoRunner keeps that loop explicit: it owns the single pending handle for
one session, steps once per tick and stops itself when the run completes.

`schedule(delay_ms, callback)` must return a handle accepted by
`cancel(handle)`; in the UI these are Tk's `after` and `after_cancel`.
"""
from typing import Any, Callable, Optional

from comporg_explorer.simulation._ui_helpers import DEFAULT_ANIM_SPEED, clamp_speed


class AutoRunner:
    def __init__(self, session, schedule: Callable[[int, Callable[[], None]], Any],
                 cancel: Callable[[Any], None], delay_ms: int = DEFAULT_ANIM_SPEED,
                 on_step: Optional[Callable[[dict], None]] = None):
        self.session = session
        self._schedule = schedule
        self._cancel = cancel
        self.delay_ms = clamp_speed(delay_ms)
        self.on_step = on_step
        self._after_id = None

    @property
    def active(self) -> bool:
        return self.session.running

    def set_delay(self, ms):
        self.delay_ms = clamp_speed(ms)

    def start(self) -> bool:
        """Begin auto-stepping. Refused while a run is already active."""
        if self.active or not self.session.has_next():
            return False
        self.session.running = True
        self._tick()
        return True

    def stop(self):
        # always safe to call; drops the pending tick and unlocks the session
        if self._after_id is not None:
            self._cancel(self._after_id)
            self._after_id = None
        self.session.running = False

    def single_step(self) -> Optional[dict]:
        if self.active:
            return None
        info = self.session.step()
        if info is not None and self.on_step:
            self.on_step(info)
        return info

    def _tick(self):
        self._after_id = None
        if not self.active:
            return
        info = self.session.step()
        if info is None or info['complete']:
            self.session.running = False
        if info is not None and self.on_step:
            self.on_step(info)
        # finished, or stopped from inside on_step
        if not self.active:
            return
        self._after_id = self._schedule(self.delay_ms, self._tick)
