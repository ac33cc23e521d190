"""
Volume mixer for the playback coordinator.

Turns a track or voice level into the volume actually written to the
playback handle, from the shared VolumeSettings.
"""

from playback.clip import AudioCategory
from state.volume_settings import VolumeSettings
from utils.helpers import clamp01


class VolumeMixer:
    """Computes effective output volumes from master/category/mute state."""

    def __init__(self, settings: VolumeSettings):
        """Initialize the mixer.

        Args:
            settings: Shared volume settings (read on every computation)
        """
        self.settings = settings

    def category_volume(self, category: AudioCategory) -> float:
        if category is AudioCategory.MUSIC:
            return self.settings.music
        return self.settings.sfx

    def is_muted(self, category: AudioCategory) -> bool:
        if category is AudioCategory.MUSIC:
            return self.settings.music_muted
        return self.settings.sfx_muted

    def effective(self, category: AudioCategory, level: float) -> float:
        """Effective output volume for a level in a category.

        Args:
            category: MUSIC or SFX
            level: Unscaled track/voice volume

        Returns:
            0.0 if the category is muted, else
            clamp01(master * category volume * level)
        """
        if self.is_muted(category):
            return 0.0
        return clamp01(self.settings.master * self.category_volume(category) * level)

    def sfx_volume(self, volume_scale: float) -> float:
        """Volume written to an sfx voice at configuration time.

        clamp01(sfx volume * scale). Master and the sfx mute flag are not
        folded in; mute is applied to the handle separately.
        """
        return clamp01(self.settings.sfx * volume_scale)
