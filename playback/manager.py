"""
Audio Manager for the playback coordinator.

Ties the music track set, sfx voice pool, clip cache, fade scheduler
and volume mixer together behind one control surface. The manager is
constructed by the entry point and passed to whatever needs it; it
never registers itself globally.
"""

from typing import Callable, Optional

from playback.clip import AudioCategory, Clip, ClipResolver, PlaybackVoice, Vec3
from playback.clip_cache import ClipCache
from playback.errors import Diagnostic, report
from playback.fades import FadeScheduler
from playback.logging import audio_log
from playback.mixer import VolumeMixer
from playback.scheduler import TaskScheduler
from playback.sfx_pool import SfxVoice, VoicePool
from playback.tracks import MusicTrackSet
from state.config import AudioConfig
from state.constants import DEFAULT_PITCH
from state.volume_settings import VolumeSettings

VoiceFactory = Callable[[AudioCategory, int], PlaybackVoice]


class AudioManager:
    """High-level audio control for music tracks and sound effects."""

    def __init__(self, resolver: ClipResolver, voice_factory: VoiceFactory,
                 config: Optional[AudioConfig] = None):
        """Build every component.

        Args:
            resolver: Loads clips by logical name
            voice_factory: Creates a playback handle, called as
                voice_factory(category, index)
            config: Construction-time configuration (defaults if None)
        """
        self.config = config or AudioConfig()
        self.resolver = resolver
        self._shutdown = False

        self.settings = VolumeSettings(
            master=self.config.master_volume,
            music=self.config.music_volume,
            sfx=self.config.sfx_volume,
            music_muted=self.config.music_muted,
            sfx_muted=self.config.sfx_muted
        )
        self.mixer = VolumeMixer(self.settings)
        self.scheduler = TaskScheduler()
        self.fades = FadeScheduler(self.scheduler, self.mixer, self.config.fade_duration)
        self.cache = ClipCache(resolver)

        self.tracks = MusicTrackSet(
            lambda index: voice_factory(AudioCategory.MUSIC, index),
            self.cache, self.mixer, self.fades, self.scheduler,
            track_count=self.config.track_count
        )
        self.pool = VoicePool(
            lambda index: voice_factory(AudioCategory.SFX, index),
            self.cache, self.mixer, self.scheduler,
            pool_size=self.config.pool_size,
            max_active=self.config.max_active_voices
        )

        audio_log('INFO', "Audio manager initialized", {
            'tracks': self.config.track_count,
            'pool_size': self.config.pool_size,
            'fade_duration': self.config.fade_duration
        })

    # === Music ===

    def play_music(self, track_id: int, name: str, volume: float = 1.0, fade_in: bool = True,
                   force_restart: bool = False, loop: bool = True) -> bool:
        """Play a music clip on a track. See MusicTrackSet.play."""
        return self.tracks.play(track_id, name, volume, fade_in, force_restart, loop)

    def stop_track(self, track_id: int, fade_out: bool = True) -> bool:
        return self.tracks.stop(track_id, fade_out)

    def stop_all_music(self, fade_out: bool = True) -> int:
        return self.tracks.stop_all(fade_out)

    def set_track_volume(self, track_id: int, volume: float, fade: bool = True) -> bool:
        return self.tracks.set_volume(track_id, volume, fade)

    def is_track_playing(self, track_id: int) -> bool:
        return self.tracks.is_playing(track_id)

    def track_state(self, track_id: int) -> Optional[dict]:
        """Snapshot of one track, or None for an invalid id."""
        track = self.tracks.get(track_id)
        return track.snapshot() if track is not None else None

    # === Sound effects ===

    def play_sfx(self, name: str, volume_scale: float = 1.0, pitch: float = DEFAULT_PITCH,
                 position: Optional[Vec3] = None) -> Optional[SfxVoice]:
        """Play a one-shot effect. See VoicePool.play."""
        return self.pool.play(name, volume_scale, pitch, position)

    def stop_all_sfx(self) -> int:
        return self.pool.stop_all()

    def pool_status(self) -> dict:
        return self.pool.get_pool_status()

    # === Volume ===

    def set_master_volume(self, volume: float) -> float:
        """Set master volume (clamped) and recompute playing tracks.

        Returns:
            The stored master volume
        """
        value = self.settings.set_master(volume)
        self.tracks.refresh_volumes()
        audio_log('DEBUG', "Master volume set", {'master': value})
        return value

    def set_music_volume(self, volume: float) -> float:
        value = self.settings.set_music(volume)
        self.tracks.refresh_volumes()
        audio_log('DEBUG', "Music volume set", {'music': value})
        return value

    def set_sfx_volume(self, volume: float) -> float:
        """Set sfx volume. Applies to effects started afterwards."""
        value = self.settings.set_sfx(volume)
        audio_log('DEBUG', "Sfx volume set", {'sfx': value})
        return value

    def toggle_music_mute(self) -> bool:
        muted = self.settings.toggle_music_mute()
        self.tracks.refresh_volumes()
        audio_log('INFO', "Music mute toggled", {'muted': muted})
        return muted

    def toggle_sfx_mute(self) -> bool:
        muted = self.settings.toggle_sfx_mute()
        self.pool.set_muted(muted)
        audio_log('INFO', "Sfx mute toggled", {'muted': muted})
        return muted

    def force_set_volume(self, master: float = 1.0, music: float = 0.7) -> dict:
        """Set master and music volume in one go and recompute tracks.

        Returns:
            The resulting volume report
        """
        self.settings.set_master(master)
        self.settings.set_music(music)
        self.tracks.refresh_volumes()
        audio_log('INFO', "Volume forced", {'master': self.settings.master, 'music': self.settings.music})
        return self.volume_report()

    def volume_report(self) -> dict:
        """Log and return the current volume settings."""
        report_data = self.settings.as_dict()
        report_data['tracks'] = [
            {'id': t.id, 'clip': t.current_clip_name, 'level': round(t.level, 3)}
            for t in self.tracks if t.playing
        ]
        audio_log('INFO', "Volume report", report_data)
        return report_data

    # === Resources ===

    def _in_use(self, category: AudioCategory, name: str, clip: Clip) -> bool:
        if category is AudioCategory.MUSIC:
            return self.tracks.uses_clip(name)
        return self.pool.references(clip)

    def evict_unused_resources(self, force: bool = False) -> int:
        """Drop cached clips no track or voice is using right now.

        Args:
            force: Also ask the resolver to unload backend resources
                that no remaining cached clip uses

        Returns:
            Number of cache entries removed
        """
        removed = self.cache.evict_unused(self._in_use)
        if force and removed:
            released = self.resolver.unload_unused(self.cache.clips())
            audio_log('INFO', "Unloaded unused assets", {'released': released})
        audio_log('INFO', "Evicted unused resources", {
            'removed': len(removed),
            'remaining': self.cache.count()
        })
        return len(removed)

    def evict_resource(self, name: str, category: AudioCategory) -> bool:
        """Drop one cached clip unless it is in use.

        Returns:
            True if the entry was removed
        """
        clip = self.cache.peek(name, category)
        if clip is None:
            return False

        if category is AudioCategory.MUSIC:
            in_use = self.tracks.uses_clip(name)
        else:
            in_use = self.pool.is_playing_clip(clip)
        if in_use:
            report(Diagnostic.CACHE_IN_USE, "Clip is in use, not evicting", {
                'name': name,
                'category': category.value
            })
            return False

        self.cache.remove(name, category)
        audio_log('INFO', "Evicted clip", {'name': name, 'category': category.value})
        return True

    def evict_all_resources(self) -> int:
        """Stop all playback, empty the cache and destroy pooled voices.

        Returns:
            Number of cache entries removed
        """
        self.tracks.stop_all(fade_out=False)
        self.pool.stop_all()
        count = self.cache.clear()
        self.pool.clear()
        self.resolver.unload_unused(())
        audio_log('INFO', "Evicted all resources", {'removed': count})
        return count

    # === Lifecycle ===

    def update(self, dt: float):
        """Advance fades and monitors by one frame.

        Args:
            dt: Seconds since the previous frame
        """
        if self._shutdown:
            return
        self.scheduler.update(dt)

    def shutdown(self):
        """Cancel all tasks, stop playback and release every handle."""
        if self._shutdown:
            return
        self._shutdown = True
        cancelled = self.scheduler.cancel_all()
        self.pool.clear()
        self.tracks.release()
        self.cache.clear()
        self.resolver.unload_unused(())
        audio_log('INFO', "Audio manager shut down", {'tasks_cancelled': cancelled})

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown
