"""Sound synthesis and playback using numpy + QSoundEffect.

Every sound an automation can pick is synthesised from sine partials
shaped by an ADSR envelope and cached to disk as a WAV file, so later
launches only load them.

Sound names
-----------
- ``bell``          struck bell with a long decay (also the completion sound)
- ``chime``         three rising notes
- ``alert``         insistent triple beep
- ``notification``  soft two-note ping
- ``custom``        bright four-note arpeggio
"""

from __future__ import annotations

import io
import logging
import wave
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from PyQt6.QtCore import QObject, QUrl, pyqtSignal
from PyQt6.QtMultimedia import QSoundEffect

from ..automation.rules import SOUND_IDS

logger = logging.getLogger(__name__)


# ── paths ────────────────────────────────────────────────────────────────

APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "Tabletop"
SOUNDS_DIR = APP_SUPPORT_DIR / "sounds"

SOUND_NAMES = SOUND_IDS

SAMPLE_RATE = 44100


# ═══════════════════════════════════════════════════════════════════════════
#  WAV SYNTHESIS HELPERS
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Note:
    """One tone: frequency, length, loudness and the gap that follows."""

    freq: float
    seconds: float
    level: float = 0.5
    gap: float = 0.0
    overtone: float = 0.0       # level of the octave partial
    attack: float = 0.005       # envelope times in seconds
    decay: float = 0.03
    sustain: float = 0.5
    release: float = 0.05


def envelope(
    length: int,
    attack: int,
    decay: int,
    sustain_level: float,
    release: int,
) -> np.ndarray:
    """ADSR envelope (all durations in samples)."""
    env = np.full(length, sustain_level, dtype=np.float64)
    a = min(attack, length)
    if a > 0:
        env[:a] = np.linspace(0.0, 1.0, a)
    d_end = min(a + decay, length)
    if d_end > a:
        env[a:d_end] = np.linspace(1.0, sustain_level, d_end - a)
    r_start = max(length - release, d_end)
    if r_start < length:
        env[r_start:] = np.linspace(env[r_start - 1] if r_start else 1.0, 0.0, length - r_start)
    return env


def render(notes: list[Note], tail: float = 0.05) -> np.ndarray:
    """Render *notes* back to back into one float64 signal (-1..1)."""
    parts: list[np.ndarray] = []
    for note in notes:
        n = int(SAMPLE_RATE * note.seconds)
        t = np.arange(n) / SAMPLE_RATE
        tone = np.sin(2 * np.pi * note.freq * t) * note.level
        if note.overtone:
            tone += np.sin(4 * np.pi * note.freq * t) * note.overtone
        env = envelope(
            n,
            int(SAMPLE_RATE * note.attack),
            int(SAMPLE_RATE * note.decay),
            note.sustain,
            int(SAMPLE_RATE * note.release),
        )
        parts.append(tone * env)
        if note.gap:
            parts.append(np.zeros(int(SAMPLE_RATE * note.gap)))
    parts.append(np.zeros(int(SAMPLE_RATE * tail)))
    return np.concatenate(parts)


def to_wav_bytes(samples: np.ndarray) -> bytes:
    """Convert a float64 numpy array (-1..1) to 16-bit PCM WAV bytes."""
    int_samples = (np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(SAMPLE_RATE)
        wf.writeframes(int_samples.tobytes())
    return buf.getvalue()


# ═══════════════════════════════════════════════════════════════════════════
#  SOUND DEFINITIONS
# ═══════════════════════════════════════════════════════════════════════════


_SCORES: dict[str, list[Note]] = {
    # A4 with an octave partial, slow swell, long ring-out
    "bell": [
        Note(440.0, 1.0, level=0.35, overtone=0.08,
             attack=0.08, decay=0.3, sustain=0.25, release=0.55),
    ],
    # C5 → E5 → G5
    "chime": [
        Note(523.25, 0.12, level=0.6, gap=0.03, sustain=0.4),
        Note(659.25, 0.12, level=0.6, gap=0.03, sustain=0.4),
        Note(783.99, 0.12, level=0.6, sustain=0.4),
    ],
    # three sharp 880 Hz beeps
    "alert": [
        Note(880.0, 0.09, level=0.45, gap=0.06, sustain=0.8, release=0.01),
        Note(880.0, 0.09, level=0.45, gap=0.06, sustain=0.8, release=0.01),
        Note(880.0, 0.09, level=0.45, sustain=0.8, release=0.01),
    ],
    # E6 → B5, quiet
    "notification": [
        Note(1318.51, 0.08, level=0.3, gap=0.02, sustain=0.3),
        Note(987.77, 0.18, level=0.3, sustain=0.3, release=0.12),
    ],
    # C5 → E5 → G5 → C6, last note held
    "custom": [
        Note(523.25, 0.10, gap=0.02, sustain=0.3),
        Note(659.25, 0.10, gap=0.02, sustain=0.3),
        Note(783.99, 0.10, gap=0.02, sustain=0.3),
        Note(1046.50, 0.35, decay=0.01, release=0.15),
    ],
}


def synthesize(name: str) -> bytes:
    """WAV bytes for the sound called *name* (``KeyError`` if unknown)."""
    return to_wav_bytes(render(_SCORES[name]))


# ═══════════════════════════════════════════════════════════════════════════
#  SOUND MANAGER
# ═══════════════════════════════════════════════════════════════════════════


class SoundManager(QObject):
    """Player for automation sounds and the timer completion sound.

    WAVs are synthesised into *sounds_dir* on first use and loaded as
    ``QSoundEffect``s.  Every ``play()`` is also announced on ``played``
    so a headless run can show what would have been heard.

    Usage::

        player = SoundManager(parent=app)
        player.apply_settings(load_settings())
        player.play("chime")
    """

    played = pyqtSignal(str)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        sounds_dir: Path | None = None,
    ) -> None:
        super().__init__(parent)
        self._enabled = True
        self._volume = 0.7  # 0.0–1.0
        self._sounds_dir = sounds_dir or SOUNDS_DIR
        self._effects: dict[str, QSoundEffect] = {}

        self._ensure_wav_files()
        self._load_effects()

    # ── configuration ─────────────────────────────────────────────────

    def apply_settings(self, settings) -> None:
        """Take ``sound_enabled`` and ``sound_volume`` from *settings*."""
        self.set_enabled(settings.sound_enabled)
        self.set_volume(settings.sound_volume)

    def set_volume(self, level: int) -> None:
        """Volume 0-100, clamped, applied to every loaded sound."""
        self._volume = max(0, min(level, 100)) / 100.0
        for effect in self._effects.values():
            effect.setVolume(self._volume)

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled

    # ── playback ──────────────────────────────────────────────────────

    def play(self, name: str) -> None:
        """Play sound *name*; unknown names and a muted player do nothing."""
        if not self._enabled:
            return
        sound = self._effects.get(name)
        if sound is None:
            logger.debug("No sound called %r", name)
            return
        sound.play()
        self.played.emit(name)

    @property
    def available(self) -> tuple[str, ...]:
        """Sound ids that loaded, in picker order."""
        return tuple(n for n in SOUND_NAMES if n in self._effects)

    @property
    def volume(self) -> int:
        return round(self._volume * 100)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def sounds_dir(self) -> Path:
        return self._sounds_dir

    # ── cache ─────────────────────────────────────────────────────────

    def _ensure_wav_files(self) -> None:
        self._sounds_dir.mkdir(parents=True, exist_ok=True)
        for name in SOUND_NAMES:
            wav = self._sounds_dir / f"{name}.wav"
            if not wav.exists():
                logger.debug("Synthesising %s", wav)
                wav.write_bytes(synthesize(name))

    def _load_effects(self) -> None:
        for name in SOUND_NAMES:
            wav = self._sounds_dir / f"{name}.wav"
            if not wav.exists():
                continue
            sound = QSoundEffect(self)
            sound.setSource(QUrl.fromLocalFile(str(wav)))
            sound.setVolume(self._volume)
            self._effects[name] = sound
