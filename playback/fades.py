"""Fade scheduling for music tracks and sfx voices.

A fade owner is any object with:
- level: the unscaled volume the fade interpolates
- handle: the PlaybackVoice the effective volume is written to
- active_fade: the owner's current FadeJob (or None)

Only one FadeJob may drive an owner at a time. FadeScheduler.start()
cancels the previous job before the new one is installed, so two jobs
never write to the same handle within a tick.
"""

from typing import Callable, Optional

from playback.clip import AudioCategory
from playback.logging import audio_log
from playback.mixer import VolumeMixer
from playback.scheduler import Task, TaskScheduler
from state.constants import CROSSFADE_DURATION
from utils.helpers import lerp


class FadeJob(Task):
    """Linear interpolation of an owner's level from start to end."""

    def __init__(self, owner, start: float, end: float, duration: float,
                 mixer: VolumeMixer, category: AudioCategory,
                 on_complete: Optional[Callable[[], None]] = None):
        """Create a fade job (use FadeScheduler.start to run one).

        Args:
            owner: Track or voice being faded
            start: Level at the beginning of the fade
            end: Level reached when the fade completes
            duration: Seconds the fade takes
            mixer: Mixer the level is passed through on every step
            category: Mixer category of the owner
            on_complete: Called once after the final volume is written.
                Never called if the job is cancelled.
        """
        super().__init__(f"fade:{getattr(owner, 'name', owner)}")
        self.owner = owner
        self.start = start
        self.end = end
        self.duration = max(0.0, duration)
        self.mixer = mixer
        self.category = category
        self.on_complete = on_complete

    def _write(self, level: float):
        self.owner.level = level
        self.owner.handle.set_volume(self.mixer.effective(self.category, level))

    def step(self, dt: float) -> bool:
        self.elapsed += dt
        if self.duration > 0 and self.elapsed < self.duration:
            self._write(lerp(self.start, self.end, self.elapsed / self.duration))
            return False

        self._write(self.end)
        if self.owner.active_fade is self:
            self.owner.active_fade = None
        if self.on_complete:
            self.on_complete()
        return True

    @property
    def progress(self) -> float:
        if self.duration <= 0:
            return 1.0 if self.elapsed > 0 else 0.0
        return min(1.0, self.elapsed / self.duration)


class FadeScheduler:
    """Starts and cancels FadeJobs on a TaskScheduler."""

    def __init__(self, scheduler: TaskScheduler, mixer: VolumeMixer,
                 duration: float = CROSSFADE_DURATION):
        """Initialize the fade scheduler.

        Args:
            scheduler: Task scheduler the jobs run on
            mixer: Mixer used to compute effective volumes
            duration: Default fade duration in seconds
        """
        self.scheduler = scheduler
        self.mixer = mixer
        self.duration = duration

    def start(self, owner, start: float, end: float, category: AudioCategory,
              duration: Optional[float] = None,
              on_complete: Optional[Callable[[], None]] = None) -> FadeJob:
        """Fade an owner, replacing any fade already driving it.

        Args:
            owner: Track or voice to fade
            start: Starting level
            end: Target level
            category: Mixer category of the owner
            duration: Seconds (default: the scheduler's duration)
            on_complete: Callback run after the fade reaches its target

        Returns:
            The installed FadeJob
        """
        self.cancel(owner)
        job = FadeJob(
            owner, start, end,
            self.duration if duration is None else duration,
            self.mixer, category, on_complete
        )
        owner.active_fade = job
        self.scheduler.add(job)
        audio_log('DEBUG', "Fade started", {
            'owner': job.name,
            'start': round(start, 3),
            'end': round(end, 3),
            'duration': job.duration
        })
        return job

    def cancel(self, owner) -> bool:
        """Cancel the owner's fade, if any. Returns True if one was cancelled."""
        job = owner.active_fade
        owner.active_fade = None
        if job is None:
            return False
        cancelled = job.cancel()
        if cancelled:
            audio_log('DEBUG', "Fade cancelled", {'owner': job.name, 'elapsed': round(job.elapsed, 3)})
        return cancelled

    def is_fading(self, owner) -> bool:
        job = owner.active_fade
        return job is not None and not job.done
