"""Tests for settings, sound synthesis, the SoundManager and the Notifier.

Covers:
- Settings dataclass defaults and JSON round-trip
- WAV synthesis for every selectable sound
- SoundManager playback API
- Notifier display and tray hand-off
"""

from __future__ import annotations

import io
import json
import wave

import numpy as np
import pytest

from tabletop.settings import Settings, load_settings, save_settings
from tabletop.audio.sounds import (
    SAMPLE_RATE,
    SOUND_NAMES,
    Note,
    SoundManager,
    envelope,
    render,
    synthesize,
)
from tabletop.automation.rules import SOUND_IDS
from tabletop.notifications import Notifier

from helpers import SignalCollector


# ═══════════════════════════════════════════════════════════════════════
#  SETTINGS
# ═══════════════════════════════════════════════════════════════════════


class TestSettingsDefaults:
    def test_tick_interval(self):
        assert Settings().tick_interval == 0.1

    def test_autoplay_on(self):
        assert Settings().autoplay_enabled is True

    def test_sound_defaults(self):
        s = Settings()
        assert s.sound_enabled is True
        assert s.sound_volume == 70
        assert s.completion_sound == "bell"

    def test_notifications_default(self):
        assert Settings().notifications_enabled is True

    def test_log_level(self):
        assert Settings().log_level == "INFO"


class TestSettingsPersistence:
    def test_round_trip(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.json"
        monkeypatch.setattr("tabletop.settings.SETTINGS_PATH", path)
        monkeypatch.setattr("tabletop.settings.APP_SUPPORT_DIR", tmp_path)
        save_settings(Settings(autoplay_enabled=False, completion_sound="chime"))
        loaded = load_settings()
        assert loaded.autoplay_enabled is False
        assert loaded.completion_sound == "chime"
        assert loaded.sound_volume == 70

    def test_missing_file_returns_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setattr(
            "tabletop.settings.SETTINGS_PATH", tmp_path / "nonexistent.json",
        )
        assert load_settings() == Settings()

    def test_invalid_json_returns_defaults(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.json"
        path.write_text("NOT VALID JSON", encoding="utf-8")
        monkeypatch.setattr("tabletop.settings.SETTINGS_PATH", path)
        assert load_settings() == Settings()

    def test_non_object_json_returns_defaults(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        monkeypatch.setattr("tabletop.settings.SETTINGS_PATH", path)
        assert load_settings() == Settings()

    def test_extra_keys_ignored(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.json"
        data = {"tick_interval": 0.5, "unknown_future_key": True}
        path.write_text(json.dumps(data), encoding="utf-8")
        monkeypatch.setattr("tabletop.settings.SETTINGS_PATH", path)
        s = load_settings()
        assert s.tick_interval == 0.5
        assert not hasattr(s, "unknown_future_key")


# ═══════════════════════════════════════════════════════════════════════
#  SOUND SYNTHESIS
# ═══════════════════════════════════════════════════════════════════════


class TestSoundGeneration:

    def test_every_automation_sound_has_a_score(self):
        assert tuple(SOUND_NAMES) == SOUND_IDS

    @pytest.mark.parametrize("name", SOUND_NAMES)
    def test_wav_is_parseable(self, name):
        data = synthesize(name)
        assert data[:4] == b"RIFF"
        with wave.open(io.BytesIO(data), "rb") as wf:
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getframerate() == SAMPLE_RATE
            assert wf.getnframes() > 0

    def test_unknown_sound(self):
        with pytest.raises(KeyError):
            synthesize("kazoo")

    def test_envelope_shape(self):
        env = envelope(1000, attack=100, decay=100, sustain_level=0.5, release=200)
        assert env[0] == 0.0
        assert env[99] == pytest.approx(1.0)
        assert env[500] == pytest.approx(0.5)
        assert env[-1] == 0.0

    def test_envelope_longer_than_signal(self):
        env = envelope(10, attack=50, decay=50, sustain_level=0.5, release=50)
        assert len(env) == 10

    def test_render_length_includes_gaps_and_tail(self):
        notes = [Note(440.0, 0.1, gap=0.05), Note(660.0, 0.1)]
        samples = render(notes, tail=0.05)
        expected = int(SAMPLE_RATE * 0.1) * 2 + int(SAMPLE_RATE * 0.05) * 2
        assert len(samples) == expected
        assert np.max(np.abs(samples)) <= 1.0


@pytest.mark.usefixtures("qapp")
class TestSoundManager:
    def test_wav_files_generated(self, tmp_path):
        SoundManager(parent=None, sounds_dir=tmp_path)
        for name in SOUND_NAMES:
            path = tmp_path / f"{name}.wav"
            assert path.exists(), f"Missing WAV: {name}"
            assert path.stat().st_size > 100

    def test_existing_files_kept(self, tmp_path):
        cached = tmp_path / "bell.wav"
        cached.write_bytes(synthesize("chime"))
        SoundManager(parent=None, sounds_dir=tmp_path)
        assert cached.read_bytes() == synthesize("chime")

    def test_set_volume(self, tmp_path):
        mgr = SoundManager(parent=None, sounds_dir=tmp_path)
        mgr.set_volume(30)
        assert mgr.volume == 30

    def test_set_volume_clamps(self, tmp_path):
        mgr = SoundManager(parent=None, sounds_dir=tmp_path)
        mgr.set_volume(200)
        assert mgr.volume == 100
        mgr.set_volume(-10)
        assert mgr.volume == 0

    def test_set_enabled(self, tmp_path):
        mgr = SoundManager(parent=None, sounds_dir=tmp_path)
        mgr.set_enabled(False)
        assert mgr.enabled is False
        mgr.play("bell")  # should be a no-op

    def test_play_invalid_name_no_crash(self, tmp_path):
        mgr = SoundManager(parent=None, sounds_dir=tmp_path)
        mgr.play("nonexistent_sound")

    def test_all_sounds_loaded(self, tmp_path):
        mgr = SoundManager(parent=None, sounds_dir=tmp_path)
        assert mgr.available == tuple(SOUND_NAMES)

    def test_apply_settings(self, tmp_path):
        mgr = SoundManager(parent=None, sounds_dir=tmp_path)
        mgr.apply_settings(Settings(sound_enabled=False, sound_volume=25))
        assert mgr.enabled is False
        assert mgr.volume == 25

    def test_played_signal(self, tmp_path):
        mgr = SoundManager(parent=None, sounds_dir=tmp_path)
        played = SignalCollector()
        mgr.played.connect(played.slot)
        mgr.play("chime")
        mgr.play("nonexistent_sound")
        mgr.set_enabled(False)
        mgr.play("bell")
        assert played.items == ["chime"]


# ═══════════════════════════════════════════════════════════════════════
#  NOTIFIER
# ═══════════════════════════════════════════════════════════════════════


class FakeTray:
    def __init__(self):
        self.balloons = []

    def showMessage(self, title, message):
        self.balloons.append((title, message))


@pytest.mark.usefixtures("qapp")
class TestNotifier:
    def test_show_emits(self):
        notifier = Notifier()
        shown = SignalCollector()
        notifier.shown.connect(shown.slot)
        notifier.show("Round over")
        assert shown.items == ["Round over"]

    def test_disabled_shows_nothing(self):
        notifier = Notifier(enabled=False)
        shown = SignalCollector()
        notifier.shown.connect(shown.slot)
        notifier.show("hidden")
        assert len(shown) == 0

    def test_tray_balloon(self):
        tray = FakeTray()
        notifier = Notifier()
        notifier.attach_tray_icon(tray)
        notifier.show("Final round!")
        assert tray.balloons == [("Automation", "Final round!")]
