"""
Clip cache for the playback coordinator.

Maps logical names to loaded clips, with separate namespaces for music
and sfx. Clips are loaded through the resolver on the first miss.
Keys are matched exactly (case-sensitive); the resolver decides how a
name maps to a file.
"""

from typing import Callable, Dict, List, Optional, Tuple

from playback.clip import AudioCategory, Clip, ClipResolver
from playback.errors import Diagnostic, report
from playback.logging import audio_log


class ClipCache:
    """Lazily populated (category, name) -> Clip cache."""

    def __init__(self, resolver: ClipResolver):
        """Initialize the cache.

        Args:
            resolver: Collaborator that loads clips on a miss
        """
        self.resolver = resolver
        self._clips: Dict[AudioCategory, Dict[str, Clip]] = {
            AudioCategory.MUSIC: {},
            AudioCategory.SFX: {},
        }
        self.hits = 0
        self.misses = 0

    def get(self, name: str, category: AudioCategory) -> Optional[Clip]:
        """Get a clip, loading it on the first request.

        Args:
            name: Logical clip name
            category: MUSIC or SFX

        Returns:
            The Clip, or None if the resolver could not load it.
            Failures are not cached; the next request tries again.
        """
        namespace = self._clips[category]
        clip = namespace.get(name)
        if clip is not None:
            self.hits += 1
            return clip

        self.misses += 1
        audio_log('INFO', "Clip not cached, loading", {'name': name, 'category': category.value})
        try:
            clip = self.resolver.resolve(name, category)
        except Exception as e:
            report(Diagnostic.RESOURCE_NOT_FOUND, "Clip resolver raised", {
                'name': name,
                'category': category.value,
                'error': str(e)
            })
            return None

        if clip is None:
            report(Diagnostic.RESOURCE_NOT_FOUND, "Clip could not be loaded", {
                'name': name,
                'category': category.value
            })
            return None

        namespace[name] = clip
        audio_log('INFO', "Clip loaded", {
            'name': name,
            'category': category.value,
            'duration': round(clip.duration, 3)
        })
        return clip

    def peek(self, name: str, category: AudioCategory) -> Optional[Clip]:
        """Get a cached clip without loading."""
        return self._clips[category].get(name)

    def contains(self, name: str, category: AudioCategory) -> bool:
        return name in self._clips[category]

    def names(self, category: AudioCategory) -> List[str]:
        return list(self._clips[category].keys())

    def clips(self) -> List[Clip]:
        """Every cached clip across both namespaces."""
        return [clip for namespace in self._clips.values() for clip in namespace.values()]

    def count(self, category: Optional[AudioCategory] = None) -> int:
        if category is not None:
            return len(self._clips[category])
        return sum(len(namespace) for namespace in self._clips.values())

    def remove(self, name: str, category: AudioCategory) -> bool:
        """Drop one entry unconditionally. Returns True if it existed."""
        return self._clips[category].pop(name, None) is not None

    def evict_unused(self, in_use: Callable[[AudioCategory, str, Clip], bool]
                     ) -> List[Tuple[AudioCategory, str]]:
        """Remove every entry the predicate reports as unused.

        Args:
            in_use: Called as in_use(category, name, clip) for each entry,
                at the moment of eviction

        Returns:
            List of (category, name) pairs that were removed
        """
        removed = []
        for category, namespace in self._clips.items():
            for name, clip in list(namespace.items()):
                if in_use(category, name, clip):
                    continue
                del namespace[name]
                removed.append((category, name))
                audio_log('INFO', "Evicted clip", {'name': name, 'category': category.value})
        return removed

    def clear(self) -> int:
        """Empty both namespaces. Returns how many entries were dropped."""
        count = self.count()
        for namespace in self._clips.values():
            namespace.clear()
        return count
