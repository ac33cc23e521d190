"""End-to-end tests for the AudioManager control surface."""

import pytest

from playback.clip import AudioCategory
from playback.manager import AudioManager
from state.config import AudioConfig
from tests.conftest import diagnostics, run_ticks


class TestMusicControl:
    def test_repeat_play_does_not_lookup_or_restart(self, manager, resolver, voices):
        for track_id in range(4):
            assert manager.play_music(track_id, 'theme', 0.5, fade_in=False)
            handle = voices.music[track_id]
            plays = handle.play_count

            assert manager.play_music(track_id, 'theme', 0.7, fade_in=False)
            assert handle.play_count == plays
            assert handle.volume == pytest.approx(0.7)
        assert resolver.call_count('theme', AudioCategory.MUSIC) == 1

    def test_tracks_are_independent(self, manager, voices):
        manager.play_music(0, 'a', 1.0, fade_in=False)
        manager.play_music(1, 'b', 0.5, fade_in=False)
        manager.stop_track(0, fade_out=False)
        assert not manager.is_track_playing(0)
        assert manager.is_track_playing(1)
        assert voices.music[1].volume == pytest.approx(0.5)

    def test_stop_all_music(self, manager):
        manager.play_music(0, 'a', fade_in=False)
        manager.play_music(3, 'b', fade_in=False)
        manager.stop_all_music(fade_out=True)
        run_ticks(manager, 5, dt=0.25)
        assert not any(manager.is_track_playing(i) for i in range(4))

    def test_set_track_volume(self, manager, voices):
        manager.play_music(0, 'a', 1.0, fade_in=False)
        assert manager.set_track_volume(0, 0.25, fade=False)
        assert voices.music[0].volume == pytest.approx(0.25)
        assert manager.set_track_volume(1, 0.25) is False

    def test_invalid_track(self, manager, audio_logger):
        assert manager.play_music(7, 'a') is False
        assert manager.stop_track(7) is False
        assert manager.track_state(7) is None
        assert len(diagnostics(audio_logger, 'invalid_track_id')) == 2

    def test_track_state(self, manager):
        manager.play_music(2, 'theme', 0.6)
        state = manager.track_state(2)
        assert state['clip'] == 'theme'
        assert state['playing'] is True
        assert state['target_volume'] == pytest.approx(0.6)
        assert state['fading'] is True

    def test_crossfade_between_tracks(self, manager, voices):
        manager.play_music(0, 'day', 1.0, fade_in=False)
        manager.play_music(1, 'night', 1.0, fade_in=True)
        manager.stop_track(0, fade_out=True)
        manager.update(0.5)
        assert voices.music[0].volume == pytest.approx(0.5)
        assert voices.music[1].volume == pytest.approx(0.5)
        manager.update(0.5)
        assert not manager.is_track_playing(0)
        assert voices.music[1].volume == pytest.approx(1.0)


class TestVolumeControl:
    def test_master_zero_mid_fade(self, manager, voices):
        manager.play_music(0, 'theme', 1.0, fade_in=True)
        manager.update(0.25)
        assert voices.music[0].volume > 0

        manager.set_master_volume(0.0)
        assert voices.music[0].volume == 0.0
        manager.update(0.25)
        assert voices.music[0].volume == 0.0

    def test_music_volume_recomputes_playing_tracks(self, manager, voices):
        manager.play_music(0, 'theme', 0.5, fade_in=False)
        manager.set_music_volume(0.5)
        assert voices.music[0].volume == pytest.approx(0.25)

    def test_setters_clamp(self, manager):
        assert manager.set_master_volume(2.0) == 1.0
        assert manager.set_music_volume(-1.0) == 0.0
        assert manager.set_sfx_volume(0.3) == pytest.approx(0.3)

    def test_toggle_music_mute(self, manager, voices):
        manager.play_music(0, 'theme', 0.8, fade_in=False)
        assert manager.toggle_music_mute() is True
        assert voices.music[0].volume == 0.0
        assert voices.music[0].muted is True

        assert manager.toggle_music_mute() is False
        assert voices.music[0].volume == pytest.approx(0.8)
        assert voices.music[0].muted is False

    def test_toggle_sfx_mute(self, manager):
        voice = manager.play_sfx('click')
        assert manager.toggle_sfx_mute() is True
        assert voice.handle.muted is True
        assert manager.play_sfx('click') is None

    def test_sfx_volume_applies_to_new_effects(self, manager):
        first = manager.play_sfx('a', 1.0)
        manager.set_sfx_volume(0.5)
        second = manager.play_sfx('b', 1.0)
        assert first.handle.volume == pytest.approx(1.0)
        assert second.handle.volume == pytest.approx(0.5)

    def test_master_volume_does_not_scale_effects(self, manager):
        manager.set_master_volume(0.5)
        manager.set_sfx_volume(0.8)
        voice = manager.play_sfx('click', 0.5)
        assert voice.handle.volume == pytest.approx(0.4)

    def test_force_set_volume_and_report(self, manager, voices):
        manager.play_music(0, 'theme', 1.0, fade_in=False)
        report = manager.force_set_volume(master=0.5, music=0.4)
        assert report['master'] == pytest.approx(0.5)
        assert report['music'] == pytest.approx(0.4)
        assert report['tracks'][0]['clip'] == 'theme'
        assert voices.music[0].volume == pytest.approx(0.2)


class TestSfx:
    def test_burst_over_pool(self, make_manager, audio_logger):
        manager = make_manager(pool_size=10)
        played = [manager.play_sfx(f'clip_{i}') for i in range(15)]
        assert all(v is not None for v in played)
        status = manager.pool_status()
        assert status['active'] == 15
        assert status['idle'] + status['active'] <= 20
        assert len(diagnostics(audio_logger, 'pool_exhausted_fallback')) == 5

    def test_stop_all_sfx(self, manager):
        manager.play_sfx('a')
        manager.play_sfx('b')
        assert manager.stop_all_sfx() == 2
        assert manager.pool_status()['active'] == 0

    def test_effects_return_to_pool(self, manager, resolver):
        resolver.durations[(AudioCategory.SFX, 'click')] = 0.5
        manager.play_sfx('click')
        run_ticks(manager, 3, dt=0.25)
        assert manager.pool_status()['active'] == 0


class TestEviction:
    def test_evict_unused_keeps_referenced_clips(self, manager, resolver):
        manager.play_music(0, 'playing', fade_in=False)
        manager.play_music(1, 'stopped', fade_in=False)
        manager.stop_track(1, fade_out=False)
        manager.play_sfx('active')
        stopped_sfx = manager.play_sfx('done')
        manager.pool.release(stopped_sfx)

        removed = manager.evict_unused_resources()

        assert removed == 2
        assert manager.cache.contains('playing', AudioCategory.MUSIC)
        assert not manager.cache.contains('stopped', AudioCategory.MUSIC)
        assert manager.cache.contains('active', AudioCategory.SFX)
        assert not manager.cache.contains('done', AudioCategory.SFX)
        assert resolver.unload_calls == []

    def test_evict_unused_checks_live_state(self, manager):
        manager.play_music(0, 'theme', fade_in=False)
        manager.stop_track(0, fade_out=True)
        # Still fading out, so still playing
        assert manager.evict_unused_resources() == 0
        run_ticks(manager, 5, dt=0.25)
        assert manager.evict_unused_resources() == 1

    def test_forced_eviction_unloads_assets(self, manager, resolver):
        manager.play_music(0, 'keep', fade_in=False)
        manager.play_music(1, 'drop', fade_in=False)
        manager.stop_track(1, fade_out=False)

        manager.evict_unused_resources(force=True)

        assert len(resolver.unload_calls) == 1
        retained = resolver.unload_calls[0]
        assert [c.name for c in retained] == ['keep']

    def test_evict_all_empties_everything(self, manager, voices):
        manager.play_music(0, 'theme', fade_in=False)
        manager.play_sfx('click')

        manager.evict_all_resources()

        assert manager.cache.count() == 0
        assert not manager.is_track_playing(0)
        status = manager.pool_status()
        assert status['idle'] == 0 and status['active'] == 0
        assert all(v.released for v in voices.sfx)

    def test_pool_rebuilds_after_evict_all(self, manager):
        manager.evict_all_resources()
        assert manager.play_sfx('click') is not None

    def test_evict_resource_refuses_in_use(self, manager, audio_logger):
        manager.play_music(0, 'theme', fade_in=False)
        voice = manager.play_sfx('click')

        assert manager.evict_resource('theme', AudioCategory.MUSIC) is False
        assert manager.evict_resource('click', AudioCategory.SFX) is False
        assert len(diagnostics(audio_logger, 'cache_in_use')) == 2

        voice.handle.stop()
        assert manager.evict_resource('click', AudioCategory.SFX) is True
        assert manager.evict_resource('missing', AudioCategory.SFX) is False


class TestLifecycle:
    def test_defaults_from_config(self, resolver, voices):
        manager = AudioManager(resolver, voices)
        assert len(voices.music) == 4
        assert len(voices.sfx) == 10
        assert manager.settings.music == pytest.approx(0.7)
        assert manager.fades.duration == 1.5

    def test_config_applied(self, make_manager, voices):
        manager = make_manager(track_count=2, pool_size=3, music_muted=True)
        assert len(voices.music) == 2
        assert len(voices.sfx) == 3
        assert manager.settings.music_muted is True

    def test_shutdown_is_idempotent(self, manager, voices):
        manager.play_music(0, 'theme')
        manager.play_sfx('click')
        manager.shutdown()
        manager.shutdown()

        assert manager.is_shutdown
        assert manager.scheduler.pending == 0
        assert all(v.released for v in voices.music)
        assert all(v.released for v in voices.sfx)
        manager.update(0.1)

    def test_invalid_config_raises(self):
        with pytest.raises(ValueError):
            AudioConfig(pool_size=0)
