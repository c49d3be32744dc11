"""Momentum and price value types shared by the signal engine and strategy."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

UPWARD = "upward"
DOWNWARD = "downward"
NEUTRAL = "neutral"
DIRECTIONS = (UPWARD, DOWNWARD, NEUTRAL)

ACCELERATING = "accelerating"
DECELERATING = "decelerating"

FLAT = "flat"
MOVING = "moving"
SLANTED = "slanted"
STEEP = "steep"
SHAPES = (FLAT, MOVING, SLANTED, STEEP)

SPIKE_TAGS = frozenset(
    f"{window}_{side}" for window in ("1h", "1d", "3d", "7d") for side in ("up", "down")
)

# "steep_with_spikes(1h_down,7d_down)" as written by older versions of the bot
_LEGACY_SPIKES_RE = re.compile(r"^(?P<shape>[a-z]+)_with_spikes\((?P<spikes>[^)]*)\)$")


@dataclass(frozen=True, slots=True)
class PricePoint:
    price: float
    timestamp: float  # unix seconds


@dataclass(frozen=True, slots=True)
class ShortDerivative:
    """Shape of the short-term move plus any breakout tags."""

    shape: str  # "flat" | "moving" | "slanted" | "steep"
    spikes: frozenset[str] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any]:
        return {"shape": self.shape, "spikes": sorted(self.spikes)}

    @classmethod
    def from_raw(cls, raw: Any) -> Optional[ShortDerivative]:
        if isinstance(raw, ShortDerivative):
            return raw
        if isinstance(raw, dict):
            shape = raw.get("shape")
            if shape not in SHAPES:
                return None
            spikes = frozenset(s for s in raw.get("spikes") or () if s in SPIKE_TAGS)
            return cls(shape=shape, spikes=spikes)
        if isinstance(raw, str):
            if raw in SHAPES:
                return cls(shape=raw)
            match = _LEGACY_SPIKES_RE.match(raw)
            if match and match.group("shape") in SHAPES:
                tags = (s.strip() for s in match.group("spikes").split(","))
                return cls(
                    shape=match.group("shape"),
                    spikes=frozenset(s for s in tags if s in SPIKE_TAGS),
                )
        return None


Derivative = Union[str, ShortDerivative, None]


@dataclass(frozen=True, slots=True)
class MomentumState:
    """Tagged momentum classification.

    ``derivative`` is ``"accelerating"``/``"decelerating"`` for the
    medium-term signal, a :class:`ShortDerivative` for the short-term one,
    and None whenever the direction could not be established.
    """

    main: str = NEUTRAL
    derivative: Derivative = None

    @property
    def shape(self) -> Optional[str]:
        if isinstance(self.derivative, ShortDerivative):
            return self.derivative.shape
        return None

    @property
    def spikes(self) -> frozenset[str]:
        if isinstance(self.derivative, ShortDerivative):
            return self.derivative.spikes
        return frozenset()

    def has_spike(self, tag: str) -> bool:
        return tag in self.spikes

    def to_dict(self) -> dict[str, Any]:
        derivative: Any = self.derivative
        if isinstance(derivative, ShortDerivative):
            derivative = derivative.to_dict()
        return {"main": self.main, "derivative": derivative}

    @classmethod
    def from_raw(cls, raw: Any) -> MomentumState:
        """Normalize any stored momentum shape into a MomentumState.

        Accepts an existing state, a bare direction string, or a dict whose
        derivative is a medium-term label, a shape string (optionally with
        the ``_with_spikes(...)`` suffix) or a ``{"shape", "spikes"}`` dict.
        Anything unrecognised becomes neutral.
        """
        if isinstance(raw, MomentumState):
            return raw
        if isinstance(raw, str):
            return cls(main=raw) if raw in DIRECTIONS else cls()
        if not isinstance(raw, dict):
            return cls()
        main = raw.get("main")
        if main not in DIRECTIONS:
            return cls()
        derivative = raw.get("derivative")
        if derivative in (ACCELERATING, DECELERATING):
            return cls(main=main, derivative=derivative)
        return cls(main=main, derivative=ShortDerivative.from_raw(derivative))


NEUTRAL_MOMENTUM = MomentumState()
