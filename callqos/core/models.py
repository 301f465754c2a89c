"""
Core data models for call-quality control.

Connection health:
  HealthLevel is ordered offline < critical < poor < fair < good < excellent.
  Only the aggregator produces it; the degradation controller consumes it.

Media degradation:

Level | Adaptations                                   | Effect
L0    | (none)                                        | Full quality
L1    | video-resolution-reduced                      | Video capped at 250 kbps / 15 fps
L2    | video-disabled                                | Audio-only call
L3    | video-disabled, audio-bitrate-reduced         | Audio capped at 24 kbps

Each level owns its adaptation set outright; L2 supersedes L1's video cap.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, FrozenSet, Tuple


class HealthLevel(Enum):
    """Aggregated connection health, worst first."""
    OFFLINE = "offline"
    CRITICAL = "critical"
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"

    @property
    def priority(self) -> int:
        return HEALTH_LEVEL_PRIORITY[self]

    @property
    def is_healthy(self) -> bool:
        return self in HEALTHY_LEVELS

    @property
    def is_critical(self) -> bool:
        """offline and critical bypass every debounce and stabilization delay."""
        return self in CRITICAL_LEVELS

    def __lt__(self, other):
        if not isinstance(other, HealthLevel):
            return NotImplemented
        return self.priority < other.priority

    def __le__(self, other):
        if not isinstance(other, HealthLevel):
            return NotImplemented
        return self.priority <= other.priority

    def __gt__(self, other):
        if not isinstance(other, HealthLevel):
            return NotImplemented
        return self.priority > other.priority

    def __ge__(self, other):
        if not isinstance(other, HealthLevel):
            return NotImplemented
        return self.priority >= other.priority


HEALTH_LEVEL_PRIORITY: Dict[HealthLevel, int] = {
    HealthLevel.OFFLINE: 0,
    HealthLevel.CRITICAL: 1,
    HealthLevel.POOR: 2,
    HealthLevel.FAIR: 3,
    HealthLevel.GOOD: 4,
    HealthLevel.EXCELLENT: 5,
}

HEALTHY_LEVELS: FrozenSet[HealthLevel] = frozenset({
    HealthLevel.EXCELLENT,
    HealthLevel.GOOD,
    HealthLevel.FAIR,
})

CRITICAL_LEVELS: FrozenSet[HealthLevel] = frozenset({
    HealthLevel.OFFLINE,
    HealthLevel.CRITICAL,
})


class ConnectionState(Enum):
    """SIP transport connection state."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CONNECTION_FAILED = "connection_failed"
    ERROR = "error"
    RECONNECTING = "reconnecting"


class RegistrationState(Enum):
    """SIP registration state."""
    UNREGISTERED = "unregistered"
    REGISTERING = "registering"
    REGISTERED = "registered"
    REGISTRATION_FAILED = "registration_failed"
    UNREGISTERING = "unregistering"


# ── Health details (normalized per-signal view) ──

@dataclass(frozen=True)
class TransportDetails:
    state: ConnectionState = ConnectionState.CONNECTED
    is_connected: bool = True
    is_recovering: bool = False


@dataclass(frozen=True)
class RegistrationDetails:
    state: RegistrationState = RegistrationState.REGISTERED
    is_registered: bool = True
    is_failed: bool = False


@dataclass(frozen=True)
class NetworkDetails:
    level: str = "unknown"
    is_available: bool = False


@dataclass(frozen=True)
class IceDetails:
    is_healthy: bool = True
    state: str = "connected"
    is_recovering: bool = False


@dataclass(frozen=True)
class HealthDetails:
    """Snapshot of every signal as the aggregator sees it.

    Defaults are the neutral values used when a source is not configured.
    """
    transport: TransportDetails = field(default_factory=TransportDetails)
    registration: RegistrationDetails = field(default_factory=RegistrationDetails)
    network: NetworkDetails = field(default_factory=NetworkDetails)
    ice: IceDetails = field(default_factory=IceDetails)

    def to_dict(self) -> dict:
        return {
            "transport": {
                "state": self.transport.state.value,
                "is_connected": self.transport.is_connected,
                "is_recovering": self.transport.is_recovering,
            },
            "registration": {
                "state": self.registration.state.value,
                "is_registered": self.registration.is_registered,
                "is_failed": self.registration.is_failed,
            },
            "network": {
                "level": self.network.level,
                "is_available": self.network.is_available,
            },
            "ice": {
                "is_healthy": self.ice.is_healthy,
                "state": self.ice.state,
                "is_recovering": self.ice.is_recovering,
            },
        }


# ── Degradation ──

class DegradationLevel(IntEnum):
    L0_NONE = 0
    L1_VIDEO_REDUCED = 1
    L2_AUDIO_ONLY = 2
    L3_AUDIO_REDUCED = 3


MIN_DEGRADATION_LEVEL = DegradationLevel.L0_NONE
MAX_DEGRADATION_LEVEL = DegradationLevel.L3_AUDIO_REDUCED


class Adaptation(Enum):
    """A single media-quality reduction."""
    VIDEO_RESOLUTION_REDUCED = "video-resolution-reduced"
    VIDEO_DISABLED = "video-disabled"
    AUDIO_BITRATE_REDUCED = "audio-bitrate-reduced"


# Ordered so that listing a level's adaptations is stable.
ADAPTATIONS_BY_LEVEL: Dict[DegradationLevel, Tuple[Adaptation, ...]] = {
    DegradationLevel.L0_NONE: (),
    DegradationLevel.L1_VIDEO_REDUCED: (Adaptation.VIDEO_RESOLUTION_REDUCED,),
    DegradationLevel.L2_AUDIO_ONLY: (Adaptation.VIDEO_DISABLED,),
    DegradationLevel.L3_AUDIO_REDUCED: (
        Adaptation.VIDEO_DISABLED,
        Adaptation.AUDIO_BITRATE_REDUCED,
    ),
}


def adaptations_for_level(level: int) -> Tuple[Adaptation, ...]:
    """Canonical adaptation set for a degradation level."""
    return ADAPTATIONS_BY_LEVEL[DegradationLevel(level)]


@dataclass(frozen=True)
class AdaptationHistoryEntry:
    """One committed degradation level change."""
    level: DegradationLevel
    reason: str
    timestamp: float = field(default_factory=lambda: time.time() * 1000)
