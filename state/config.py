"""
Construction-time configuration for the playback coordinator.

Track count, pool size and fade duration are fixed when the
AudioManager is built; nothing here is persisted.
"""

from dataclasses import dataclass
from typing import Optional

from .constants import (
    MUSIC_TRACK_COUNT, CROSSFADE_DURATION, SFX_POOL_SIZE, POOL_GROWTH_FACTOR,
    MASTER_VOLUME_DEFAULT, MUSIC_VOLUME_DEFAULT, SFX_VOLUME_DEFAULT
)


@dataclass
class AudioConfig:
    """Configuration for an AudioManager instance.

    Args:
        track_count: Number of music track slots (fixed for the lifetime)
        pool_size: Number of sfx voices allocated up front
        fade_duration: Seconds taken by every track fade
        max_active_voices: Hard cap on concurrently active sfx voices.
            Defaults to (and may not exceed) pool_size * POOL_GROWTH_FACTOR.
        master_volume: Initial master volume
        music_volume: Initial music category volume
        sfx_volume: Initial sfx category volume
    """
    track_count: int = MUSIC_TRACK_COUNT
    pool_size: int = SFX_POOL_SIZE
    fade_duration: float = CROSSFADE_DURATION
    max_active_voices: Optional[int] = None
    master_volume: float = MASTER_VOLUME_DEFAULT
    music_volume: float = MUSIC_VOLUME_DEFAULT
    sfx_volume: float = SFX_VOLUME_DEFAULT
    music_muted: bool = False
    sfx_muted: bool = False

    def __post_init__(self):
        if self.track_count < 1:
            raise ValueError(f"track_count must be >= 1, got {self.track_count}")
        if self.pool_size < 1:
            raise ValueError(f"pool_size must be >= 1, got {self.pool_size}")
        if self.fade_duration < 0:
            raise ValueError(f"fade_duration must be >= 0, got {self.fade_duration}")

        if self.max_active_voices is None:
            self.max_active_voices = self.voice_capacity
        if not 1 <= self.max_active_voices <= self.voice_capacity:
            raise ValueError(
                f"max_active_voices must be 1-{self.voice_capacity}, "
                f"got {self.max_active_voices}"
            )

        for name in ('master_volume', 'music_volume', 'sfx_volume'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be 0.0-1.0, got {value}")

    @property
    def voice_capacity(self) -> int:
        """Upper bound on idle + active voices."""
        return self.pool_size * POOL_GROWTH_FACTOR
