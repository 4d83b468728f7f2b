import copy
import json
import logging
import threading

from .config import (
    DEFAULT_TZ,
    HISTORY_RETENTION_MS,
    RESOURCE_KINDS,
    RESOURCE_SPECS,
    TP_MILESTONES,
)
from .daily_reset import ensure_time_zone, next_daily_reset_ts
from .history import empty_history, record_change, sample, sanitize_history
from .logging_setup import setup_logger
from .resources import (
    ResourceState,
    adjust_resource,
    current_of,
    ensure_anchor,
    milestone_times,
    sanitize_resource,
    set_next_override,
    set_resource_value,
    time_to_full,
)
from .utils import compact_number, format_dhms, format_mmss, is_finite, to_number
from .wasted import WastedInfo, compute_wasted_at_cap


class ResourceTracker:
    """Holds the persisted state for every resource kind and drives the engine.

    The host polls `tick(now)` about once a second and calls the mutators on
    user input. Every method takes `now` explicitly; writes are serialised by
    a re-entrant lock so one tracker can be shared across threads.
    """

    def __init__(self, logger: logging.Logger | None = None, time_zone: str = DEFAULT_TZ):
        self._logger = logger or setup_logger()
        self._lock = threading.RLock()
        self._time_zone = ensure_time_zone(time_zone)
        self._states: dict[str, ResourceState] = {}
        self._history = empty_history()
        self._last_sampled: dict[str, float] = {}
        self._wasted_reset: dict[str, float | None] = {kind: None for kind in RESOURCE_KINDS}

    @staticmethod
    def _spec(kind: str) -> tuple[float, float]:
        spec = RESOURCE_SPECS[kind]
        return spec["rate_ms"], spec["cap"]

    def load(self, data: dict | None, now: int) -> None:
        data = data if isinstance(data, dict) else {}
        resources = data.get("resources") if isinstance(data.get("resources"), dict) else {}
        wasted_reset = data.get("wasted_reset") if isinstance(data.get("wasted_reset"), dict) else {}

        with self._lock:
            for kind in RESOURCE_KINDS:
                rate, cap = self._spec(kind)
                defaults = ResourceState(base=cap, last=now, next_override=None)
                state = sanitize_resource(resources.get(kind), cap, defaults=defaults)
                self._states[kind] = ensure_anchor(state, rate, cap, now)

                anchor = wasted_reset.get(kind)
                self._wasted_reset[kind] = to_number(anchor) if is_finite(anchor) else None

            self._history = sanitize_history(data.get("history"), now)
            self._last_sampled = {}
            tz = data.get("time_zone")
            if tz:
                self._time_zone = ensure_time_zone(tz)

        self._logger.info(f"TRACKER loaded tz={self._time_zone} kinds={','.join(RESOURCE_KINDS)}")

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "resources": {kind: state.to_dict() for kind, state in self._states.items()},
                "history": copy.deepcopy(self._history),
                "wasted_reset": dict(self._wasted_reset),
                "time_zone": self._time_zone,
            }

    def state(self, kind: str) -> ResourceState:
        with self._lock:
            return self._states[kind]

    def current(self, kind: str, now: int):
        rate, cap = self._spec(kind)
        return current_of(self.state(kind), rate, cap, now)

    def _apply(self, kind: str, new_state: ResourceState, now: int, event_type: str, note: str | None) -> float:
        rate, cap = self._spec(kind)
        prev_value = current_of(self._states[kind], rate, cap, now).value
        self._states[kind] = new_state
        value = current_of(new_state, rate, cap, now).value
        self._history[kind] = record_change(
            self._history[kind],
            kind,
            prev_value,
            value,
            now,
            type=event_type,
            delta=value - prev_value,
            note=note,
        )
        return compact_number(value)

    def spend(self, kind: str, amount: float, now: int, note: str | None = None) -> float:
        rate, cap = self._spec(kind)
        with self._lock:
            new_state = adjust_resource(self._states[kind], -abs(amount), rate, cap, now)
            value = self._apply(kind, new_state, now, "spend", note)
        self._logger.info(f"RESOURCE spend kind={kind} amount={amount} value={value}")
        return compact_number(value)

    def adjust(self, kind: str, delta: float, now: int) -> float:
        rate, cap = self._spec(kind)
        with self._lock:
            new_state = adjust_resource(self._states[kind], delta, rate, cap, now)
            value = self._apply(kind, new_state, now, "spend" if delta < 0 else "manual", None)
        self._logger.info(f"RESOURCE adjust kind={kind} delta={delta} value={value}")
        return compact_number(value)

    def set_value(self, kind: str, value, now: int) -> bool:
        _, cap = self._spec(kind)
        with self._lock:
            state = self._states[kind]
            new_state = set_resource_value(state, value, cap, now)
            if new_state is state:
                return False
            result = self._apply(kind, new_state, now, "manual", None)
        self._logger.info(f"RESOURCE set kind={kind} value={result}")
        return True

    def set_next_override(self, kind: str, text, now: int) -> bool:
        with self._lock:
            state = self._states[kind]
            new_state = set_next_override(state, text, now)
            if new_state is state:
                return False
            self._states[kind] = new_state
        self._logger.info(f"RESOURCE anchor kind={kind} next={new_state.next_override}")
        return True

    def tick(self, now: int) -> None:
        with self._lock:
            for kind in RESOURCE_KINDS:
                value = self.current(kind, now).value
                self._history[kind], self._last_sampled = sample(
                    self._history[kind], kind, value, now, self._last_sampled
                )

    def reset_wasted(self, kind: str, now: int) -> None:
        dropped = self.wasted(kind, now)
        with self._lock:
            self._wasted_reset[kind] = now
            value = self.current(kind, now).value
            self._history[kind] = record_change(
                self._history[kind], kind, None, value, now, type="reset", note="wasted reset"
            )
        self._logger.info(f"RESOURCE wasted reset kind={kind} dropped={format_dhms(dropped.ms)}")

    def wasted(self, kind: str, now: int) -> WastedInfo:
        rate, cap = self._spec(kind)
        with self._lock:
            points = list(self._history[kind]["points"])
            anchor = self._wasted_reset.get(kind)
            value = self.current(kind, now).value
        return compute_wasted_at_cap(points, value, cap, rate, HISTORY_RETENTION_MS, now, anchor)

    def status(self, now: int) -> dict:
        """Everything an overlay needs for one frame, as plain JSON."""
        out: dict = {"now": now, "resources": {}}
        with self._lock:
            for kind in RESOURCE_KINDS:
                rate, cap = self._spec(kind)
                cur = self.current(kind, now)
                full_ms, full_at = time_to_full(cur, rate, cap, now)
                wasted = self.wasted(kind, now)
                milestones = TP_MILESTONES if kind == "tp" else ()
                out["resources"][kind] = {
                    "value": cur.value,
                    "cap": cap,
                    "next_point": cur.next_point,
                    "full_at": full_at,
                    "time_to_full_ms": full_ms,
                    "time_to_full_text": format_dhms(full_ms),
                    "next_point_text": format_mmss(cur.next_point - now),
                    "milestones": {str(m): ts for m, ts in milestone_times(cur, rate, milestones, now).items()},
                    "wasted_ms": wasted.ms,
                    "wasted_points": wasted.points,
                }
            out["time_zone"] = self._time_zone
        out["next_daily_reset"] = next_daily_reset_ts(now, out["time_zone"])
        return json.loads(json.dumps(out))
