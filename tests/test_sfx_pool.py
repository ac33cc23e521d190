"""Tests for the sfx voice pool."""

import pytest

from playback.clip import AudioCategory
from playback.sfx_pool import VoicePool
from tests.conftest import FakeVoice, diagnostics, run_ticks


@pytest.fixture
def make_pool(cache, mixer, scheduler):
    def _make(pool_size=4, max_active=None):
        return VoicePool(lambda index: FakeVoice(f'sfx_{index}'), cache, mixer, scheduler,
                         pool_size=pool_size, max_active=max_active)
    return _make


@pytest.fixture
def pool(make_pool):
    return make_pool()


class TestPlay:
    def test_play_configures_and_starts_voice(self, pool, settings):
        settings.set_sfx(0.5)
        voice = pool.play('click', volume_scale=0.5, pitch=1.2, position=(1.0, 2.0, 3.0))

        assert voice is not None
        assert voice.is_active
        handle = voice.handle
        assert handle.playing
        assert handle.volume == pytest.approx(0.25)
        assert handle.pitch == 1.2
        assert handle.looping is False
        assert handle.positional is True
        assert handle.position == (1.0, 2.0, 3.0)
        assert voice.spatial and voice.clip_name == 'click'

    def test_play_without_position_is_not_positional(self, pool):
        voice = pool.play('click')
        assert voice.handle.positional is False
        assert voice.position is None

    def test_volume_is_sfx_times_scale(self, pool, settings):
        settings.set_master(0.5)
        settings.set_sfx(0.8)
        voice = pool.play('click', volume_scale=0.5)
        assert voice.volume == pytest.approx(0.4)
        assert voice.handle.volume == pytest.approx(0.4)

    @pytest.mark.parametrize("name,scale", [('', 1.0), ('click', 0.0), ('click', -0.5)])
    def test_noop_requests(self, pool, resolver, name, scale):
        assert pool.play(name, volume_scale=scale) is None
        assert resolver.calls == []
        assert pool.active_count == 0

    def test_muted_sfx_is_noop(self, pool, settings, resolver):
        settings.toggle_sfx_mute()
        assert pool.play('click') is None
        assert resolver.calls == []

    def test_missing_clip_aborts(self, pool, resolver, audio_logger):
        resolver.missing.add('nope')
        assert pool.play('nope') is None
        assert pool.active_count == 0
        assert pool.idle_count == 4
        assert diagnostics(audio_logger, 'resource_not_found')

    def test_clip_is_cached_between_plays(self, pool, resolver):
        pool.play('click')
        pool.play('click')
        assert resolver.call_count('click', AudioCategory.SFX) == 1


class TestReturnMonitor:
    def test_voice_returns_after_duration_plus_grace(self, pool, resolver, scheduler):
        resolver.durations[(AudioCategory.SFX, 'boom')] = 1.0
        voice = pool.play('boom')

        run_ticks(scheduler, 4, dt=0.25)
        assert voice.is_active  # Still playing at the duration: one grace tick

        scheduler.update(0.25)
        assert not voice.is_active
        assert pool.idle_count == 4
        assert voice.handle.clip is None

    def test_early_stop_detected_next_tick(self, pool, resolver, scheduler):
        resolver.durations[(AudioCategory.SFX, 'long')] = 30.0
        voice = pool.play('long')

        voice.handle.stop()
        assert voice.is_active  # Not instantaneous

        scheduler.update(0.016)
        assert not voice.is_active
        assert pool.active_count == 0

    def test_finished_voice_returns_before_duration(self, pool, resolver, scheduler):
        resolver.durations[(AudioCategory.SFX, 'short')] = 5.0
        voice = pool.play('short')
        scheduler.update(0.1)
        voice.handle.finish()
        scheduler.update(0.1)
        assert pool.active_count == 0

    def test_stale_monitor_does_not_release_reused_voice(self, make_pool, resolver, scheduler):
        pool = make_pool(pool_size=1)
        resolver.durations[(AudioCategory.SFX, 'a')] = 0.1
        first = pool.play('a')
        pool.release(first)
        # The same voice is handed out again before the old monitor runs
        again = pool.play('a')
        assert again is first

        scheduler.update(0.05)
        assert again.is_active


class TestRelease:
    def test_release_is_idempotent(self, pool):
        voice = pool.play('click')
        assert pool.release(voice) is True
        assert pool.release(voice) is False
        assert pool.idle_count == 4

    def test_release_resets_handle(self, pool):
        voice = pool.play('click', pitch=1.5, position=(0.0, 1.0, 0.0))
        handle = voice.handle
        handle.set_bypass_effects(True)
        pool.release(voice)

        assert handle.playing is False
        assert handle.clip is None
        assert handle.pitch == 1.0
        assert handle.positional is False
        assert handle.bypass is False
        assert voice.state == 'pooled'
        assert voice.clip is None

    def test_stop_all_returns_every_voice(self, pool):
        for name in ('a', 'b', 'c'):
            pool.play(name)
        assert pool.stop_all() == 3
        assert pool.active_count == 0
        assert pool.idle_count == 4

    def test_clear_destroys_everything(self, pool):
        handles = [pool.play(name).handle for name in ('a', 'b')]
        pool.clear()
        assert pool.idle_count == 0
        assert pool.active_count == 0
        assert all(h.released for h in handles)
        # Slots are free again
        assert pool.play('c') is not None


class TestGrowth:
    def test_burst_of_fifteen_over_pool_of_ten(self, make_pool, scheduler, audio_logger):
        pool = make_pool(pool_size=10)
        played = [pool.play(f'clip_{i}') for i in range(15)]

        assert all(v is not None and v.handle.playing for v in played)
        assert pool.active_count == 15
        assert pool.idle_count == 0
        assert pool.created == 15
        assert len(diagnostics(audio_logger, 'pool_exhausted_fallback')) == 5
        assert not diagnostics(audio_logger, 'voice_stolen')

        for voice in played:
            voice.handle.finish()
        scheduler.update(0.016)
        assert pool.active_count == 0
        assert pool.idle_count == 15
        assert pool.idle_count + pool.active_count <= 2 * 10
        assert pool.destroyed == 0

    def test_oldest_voice_stolen_at_cap(self, make_pool, audio_logger):
        pool = make_pool(pool_size=2, max_active=2)
        first = pool.play('a')
        first_handle = first.handle
        pool.play('b')
        third = pool.play('c')

        assert pool.active_count == 2
        assert third is first  # Same slot reused
        assert third.clip_name == 'c'
        assert first_handle.clip.name == 'c'
        assert diagnostics(audio_logger, 'voice_stolen')

    def test_cap_below_pool_size_steals_before_idle(self, make_pool, audio_logger):
        pool = make_pool(pool_size=4, max_active=2)
        first = pool.play('a')
        first_handle = first.handle
        pool.play('b')
        pool.play('c')
        pool.play('d')

        assert pool.active_count == 2
        assert pool.idle_count == 2
        assert [v.clip_name for v in pool.active_voices] == ['c', 'd']
        assert first_handle.clip is None
        assert not first_handle.is_playing()
        assert len(diagnostics(audio_logger, 'voice_stolen')) == 2
        assert not diagnostics(audio_logger, 'pool_exhausted_fallback')

    def test_capacity_is_hard_limit(self, make_pool):
        pool = make_pool(pool_size=2)
        for i in range(10):
            pool.play(f'clip_{i}')
        status = pool.get_pool_status()
        assert status['active'] == 4
        assert status['idle'] + status['active'] <= status['capacity']

    def test_bound_holds_over_random_sequence(self, make_pool, scheduler):
        pool = make_pool(pool_size=3)
        for round_no in range(20):
            for i in range(round_no % 7):
                pool.play(f'clip_{i}')
            if round_no % 3 == 0:
                for voice in pool.active_voices[:2]:
                    voice.handle.finish()
            scheduler.update(0.5)
            assert pool.idle_count + pool.active_count <= 6


class TestQueries:
    def test_references_and_is_playing_clip(self, pool, cache):
        voice = pool.play('click')
        clip = cache.peek('click', AudioCategory.SFX)
        assert pool.references(clip)
        assert pool.is_playing_clip(clip)

        voice.handle.stop()
        assert pool.references(clip)
        assert not pool.is_playing_clip(clip)

        pool.release(voice)
        assert not pool.references(clip)

    def test_set_muted_applies_to_active_voices(self, pool):
        voice = pool.play('click')
        pool.set_muted(True)
        assert voice.handle.muted is True
