"""Diagnostics reported by the playback coordinator.

None of these terminate anything: a refused or failed request is logged
through the audio logger and the caller gets False/None back.
"""

from enum import Enum
from typing import Optional, Dict, Any

from playback.logging import audio_log


class Diagnostic(Enum):
    """Recoverable conditions reported through the audio logger."""
    INVALID_TRACK_ID = "invalid_track_id"                # Track slot out of range
    EMPTY_CLIP_NAME = "empty_clip_name"                  # Play request without a name
    RESOURCE_NOT_FOUND = "resource_not_found"            # Resolver found nothing
    POOL_EXHAUSTED_FALLBACK = "pool_exhausted_fallback"  # New voice constructed
    VOICE_STOLEN = "voice_stolen"                        # Active cap reached
    CACHE_IN_USE = "cache_in_use"                        # Eviction refused
    TASK_FAILED = "task_failed"                          # Scheduled task raised


# Default log level per diagnostic
_LEVELS = {
    Diagnostic.INVALID_TRACK_ID: 'ERROR',
    Diagnostic.EMPTY_CLIP_NAME: 'WARNING',
    Diagnostic.RESOURCE_NOT_FOUND: 'ERROR',
    Diagnostic.POOL_EXHAUSTED_FALLBACK: 'WARNING',
    Diagnostic.VOICE_STOLEN: 'WARNING',
    Diagnostic.CACHE_IN_USE: 'WARNING',
    Diagnostic.TASK_FAILED: 'ERROR',
}


def report(diagnostic: Diagnostic, message: str,
           context: Optional[Dict[str, Any]] = None, level: Optional[str] = None):
    """Log a diagnostic with its code attached to the context.

    Args:
        diagnostic: The Diagnostic being reported
        message: Human readable message
        context: Optional extra context
        level: Override for the default level of this diagnostic
    """
    ctx = {'diagnostic': diagnostic.value}
    if context:
        ctx.update(context)
    audio_log(level or _LEVELS[diagnostic], message, ctx)
