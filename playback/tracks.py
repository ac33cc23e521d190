"""Music track set for the playback coordinator.

A fixed array of independently controlled music channels. Each track
owns one playback handle for its whole lifetime and at most one fade
job at a time.
"""

from typing import Callable, List, Optional

from playback.clip import AudioCategory, Clip, PlaybackVoice
from playback.clip_cache import ClipCache
from playback.errors import Diagnostic, report
from playback.fades import FadeScheduler
from playback.logging import audio_log
from playback.mixer import VolumeMixer
from playback.scheduler import Task, TaskScheduler
from state.constants import MUSIC_TRACK_COUNT
from utils.helpers import clamp01


class MusicTrack:
    """State of one music track slot."""

    def __init__(self, track_id: int, handle: PlaybackVoice):
        self.id = track_id
        self.name = f'music_{track_id}'
        self.handle = handle
        self.current_clip_name: Optional[str] = None
        self.clip: Optional[Clip] = None
        self.playing = False
        self.target_volume = 0.0
        self.level = 0.0  # Instantaneous unscaled volume
        self.active_fade = None
        self.loop = True

        handle.set_looping(True)
        handle.set_volume(0.0)

    def snapshot(self) -> dict:
        return {
            'id': self.id,
            'clip': self.current_clip_name,
            'playing': self.playing,
            'target_volume': self.target_volume,
            'level': self.level,
            'fading': self.active_fade is not None,
            'loop': self.loop,
        }

    def __repr__(self):
        return f"<MusicTrack {self.id} {self.current_clip_name} playing={self.playing}>"


class TrackCompletionWatch(Task):
    """Marks non-looping tracks stopped once their handle has finished.

    Runs for the lifetime of the track set.
    """

    def __init__(self, tracks: 'MusicTrackSet'):
        super().__init__("track-completion-watch")
        self.tracks = tracks

    def step(self, dt: float) -> bool:
        self.elapsed += dt
        for track in self.tracks:
            if (track.playing and not track.loop and track.active_fade is None
                    and not track.handle.is_playing()):
                audio_log('INFO', "Music track finished", {
                    'track': track.id,
                    'clip': track.current_clip_name
                })
                self.tracks.halt(track)
        return False


class MusicTrackSet:
    """Fixed set of cross-fadeable music tracks."""

    def __init__(self, voice_factory: Callable[[int], PlaybackVoice], cache: ClipCache,
                 mixer: VolumeMixer, fades: FadeScheduler, scheduler: TaskScheduler,
                 track_count: int = MUSIC_TRACK_COUNT):
        """Create every track slot.

        Args:
            voice_factory: Creates the playback handle for a track id
            cache: Clip cache used to resolve music names
            mixer: Volume mixer (master/music volume and mute)
            fades: Fade scheduler driving track fades
            scheduler: Task scheduler for the completion watch
            track_count: Number of track slots
        """
        self.cache = cache
        self.mixer = mixer
        self.fades = fades
        self._tracks: List[MusicTrack] = [
            MusicTrack(track_id, voice_factory(track_id)) for track_id in range(track_count)
        ]
        self._watch = scheduler.add(TrackCompletionWatch(self))

        audio_log('INFO', "Music tracks initialized", {'track_count': track_count})

    def __iter__(self):
        return iter(self._tracks)

    def __len__(self):
        return len(self._tracks)

    def get(self, track_id: int) -> Optional[MusicTrack]:
        """Get a track, or None if the id is out of range."""
        if isinstance(track_id, int) and 0 <= track_id < len(self._tracks):
            return self._tracks[track_id]
        return None

    def _require(self, track_id: int, action: str) -> Optional[MusicTrack]:
        track = self.get(track_id)
        if track is None:
            report(Diagnostic.INVALID_TRACK_ID, "Invalid music track id", {
                'track': track_id,
                'action': action,
                'track_count': len(self._tracks)
            })
        return track

    # === Volume ===

    def apply_level(self, track: MusicTrack, level: float):
        """Snap a track's level and write its effective volume."""
        track.level = level
        track.handle.set_volume(self.mixer.effective(AudioCategory.MUSIC, level))

    def _retarget(self, track: MusicTrack, volume: float, fade: bool):
        self.fades.cancel(track)
        if fade:
            self.fades.start(track, track.level, volume, AudioCategory.MUSIC)
        else:
            self.apply_level(track, volume)

    def refresh_volumes(self):
        """Recompute every playing track's output after a settings change."""
        muted = self.mixer.is_muted(AudioCategory.MUSIC)
        for track in self._tracks:
            if track.playing:
                track.handle.set_volume(self.mixer.effective(AudioCategory.MUSIC, track.level))
                track.handle.set_muted(muted)

    # === Control ===

    def play(self, track_id: int, clip_name: str, volume: float = 1.0, fade_in: bool = True,
             force_restart: bool = False, loop: bool = True) -> bool:
        """Play a music clip on a track.

        Args:
            track_id: Track slot
            clip_name: Logical music clip name
            volume: Track volume (0.0-1.0, clamped)
            fade_in: Fade from the current level instead of snapping
            force_restart: Reload and restart even if the clip is already playing
            loop: Whether the clip loops

        Returns:
            True if the track is now playing the clip
        """
        track = self._require(track_id, 'play')
        if track is None:
            return False

        if not clip_name:
            report(Diagnostic.EMPTY_CLIP_NAME, "Music clip name is empty", {'track': track_id})
            return False

        volume = clamp01(volume)

        # Already playing this clip: only volume and loop change
        if not force_restart and track.playing and track.current_clip_name == clip_name:
            track.target_volume = volume
            self._retarget(track, volume, fade_in)
            track.loop = loop
            track.handle.set_looping(loop)
            audio_log('DEBUG', "Music already playing, retargeted", {
                'track': track_id,
                'clip': clip_name,
                'volume': volume
            })
            return True

        clip = self.cache.get(clip_name, AudioCategory.MUSIC)
        if clip is None:
            return False

        self.fades.cancel(track)

        reload = force_restart or track.handle.clip is not clip or not track.handle.is_playing()
        track.current_clip_name = clip_name
        track.clip = clip
        track.target_volume = volume
        track.loop = loop
        track.playing = True

        if reload:
            track.handle.stop()
            track.handle.load(clip)
            track.handle.set_looping(loop)
            track.handle.set_muted(self.mixer.is_muted(AudioCategory.MUSIC))
            track.handle.set_volume(self.mixer.effective(AudioCategory.MUSIC, track.level))
            track.handle.play()
        else:
            track.handle.set_looping(loop)

        if fade_in:
            self.fades.start(track, track.level, volume, AudioCategory.MUSIC)
        else:
            self.apply_level(track, volume)

        audio_log('INFO', "Music playing", {
            'track': track_id,
            'clip': clip_name,
            'volume': volume,
            'fade_in': fade_in,
            'loop': loop,
            'restarted': reload
        })
        return True

    def stop(self, track_id: int, fade_out: bool = True) -> bool:
        """Stop a track.

        Args:
            track_id: Track slot
            fade_out: Fade to silence before stopping

        Returns:
            True if the track was playing
        """
        track = self._require(track_id, 'stop')
        if track is None or not track.playing:
            return False

        self.fades.cancel(track)
        if fade_out:
            self.fades.start(track, track.level, 0.0, AudioCategory.MUSIC,
                             on_complete=lambda: self.halt(track))
        else:
            self.halt(track)
        return True

    def halt(self, track: MusicTrack):
        """Stop a track immediately and detach its clip."""
        self.fades.cancel(track)
        track.handle.unload()
        self.apply_level(track, 0.0)
        track.playing = False
        track.current_clip_name = None
        track.clip = None
        audio_log('DEBUG', "Music track stopped", {'track': track.id})

    def stop_all(self, fade_out: bool = True) -> int:
        """Stop every playing track. Returns how many were playing."""
        return sum(1 for track in self._tracks if self.stop(track.id, fade_out))

    def set_volume(self, track_id: int, volume: float, fade: bool = True) -> bool:
        """Change a playing track's volume.

        Args:
            track_id: Track slot
            volume: New track volume (0.0-1.0, clamped)
            fade: Fade from the current level instead of snapping

        Returns:
            True if the track was playing
        """
        track = self._require(track_id, 'set_volume')
        if track is None or not track.playing:
            return False

        track.target_volume = clamp01(volume)
        self._retarget(track, track.target_volume, fade)
        return True

    # === Queries ===

    def is_playing(self, track_id: int) -> bool:
        track = self.get(track_id)
        return track is not None and track.playing

    def uses_clip(self, name: str) -> bool:
        """True if a playing track has this clip name."""
        return any(t.playing and t.current_clip_name == name for t in self._tracks)

    def release(self):
        """Stop every track and free the handles."""
        for track in self._tracks:
            if track.playing:
                self.halt(track)
            track.handle.release()
        self._watch.cancel()
