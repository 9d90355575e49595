from __future__ import annotations

import logging
import math
import wave
from dataclasses import dataclass
from pathlib import Path
from threading import Event, Thread
from typing import List, Optional, Tuple

import numpy as np

try:
    import winsound
except ImportError:  # pragma: no cover - non-Windows fallback
    winsound = None  # type: ignore

logger = logging.getLogger(__name__)

SAMPLE_RATE = 22050
LOOP_SECONDS = 8.0
ATTACK_SECONDS = 0.05
DECAY_FLOOR = 0.0001
MASTER_GAIN = 0.6


@dataclass(frozen=True)
class SoundOption:
    id: str
    name: str
    description: str


SOUND_OPTIONS: List[SoundOption] = [
    SoundOption("crystal-morning", "Crystal Morning Bell", "Clean, polished bell melody"),
    SoundOption("horizon-echo", "Horizon Echo", "Hopeful, sweeping melody"),
    SoundOption("nostalgic-melody", "Old Flip Phone", "Classic ringtone from the flip-phone days"),
    SoundOption("warm-piano", "Warm Sunlight Piano", "Gentle chords that ease you awake"),
    SoundOption("sunrise-edm", "Sunrise EDM", "Driving dance beat to get you up"),
    SoundOption("nature-chorus", "Forest Morning Walk", "Birdsong over a soft breeze"),
    SoundOption("zen-sanctuary", "Zen Sanctuary Bell", "Deep, lingering meditation bell"),
    SoundOption("pixel-quest", "8-bit Quest", "Bouncy retro game arpeggio"),
    SoundOption("midnight-jazz", "Midnight Jazz Lounge", "Walking bass line for a city morning"),
    SoundOption("panic-pulse", "Panic Pulse", "Siren you cannot sleep through"),
]

# (kind, start, duration, gain, waveform, freq_from, freq_to)
SoundEvent = Tuple[str, float, float, float, str, float, float]


def sound_option(sound_id: str) -> Optional[SoundOption]:
    for option in SOUND_OPTIONS:
        if option.id == sound_id:
            return option
    return None


def _note(freq: float, start: float, duration: float, gain: float, waveform: str = "sine") -> SoundEvent:
    return ("note", start, duration, gain, waveform, freq, freq)


def _slide(freq_from: float, freq_to: float, duration: float, gain: float, waveform: str, start: float) -> SoundEvent:
    return ("slide", start, duration, gain, waveform, freq_from, freq_to)


def sound_pattern(sound_id: str, volume: int) -> List[SoundEvent]:
    """Note layout of one pass of a sound; times are seconds from the pass start."""
    g = (volume / 100) * MASTER_GAIN
    rng = np.random.default_rng(7)
    events: List[SoundEvent] = []

    if sound_id == "crystal-morning":
        for i, f in enumerate([659.25, 783.99, 1046.50, 783.99, 880.00, 659.25]):
            events.append(_note(f, i * 0.6, 0.8, g, "sine"))
    elif sound_id == "horizon-echo":
        for i, f in enumerate([493.88, 659.25, 739.99, 987.77, 880.00, 739.99, 659.25]):
            events.append(_note(f, i * 0.7, 1.0, g, "triangle"))
    elif sound_id == "nostalgic-melody":
        for i, f in enumerate([659.25, 587.33, 369.99, 415.30] * 2):
            events.append(_note(f, i * 0.3, 0.25, g, "square"))
    elif sound_id == "warm-piano":
        chords = [
            [261.63, 329.63, 392.00],
            [349.23, 440.00, 523.25],
            [392.00, 493.88, 587.33],
            [261.63, 329.63, 392.00, 523.25],
        ]
        for i, chord in enumerate(chords):
            events.extend(_note(f, i * 1.2, 2.5, g * 0.4, "sine") for f in chord)
    elif sound_id == "sunrise-edm":
        for i in range(16):
            events.append(_note(110, i * 0.2, 0.15, g * 1.5, "sawtooth"))
            if i % 2 == 0:
                events.append(_note(880, i * 0.2 + 0.1, 0.1, g * 0.5, "square"))
            if i % 4 == 0:
                events.append(_note(55, i * 0.2, 0.3, g * 2, "sine"))
    elif sound_id == "nature-chorus":
        for i in range(12):
            t = i * 0.4
            chirp_from = 2000 + rng.random() * 1500
            chirp_to = 3000 + rng.random() * 1000
            events.append(_slide(chirp_from, chirp_to, 0.2, g * 0.2, "sine", t))
            if i % 3 == 0:
                events.append(_note(150, t, 1.0, g * 0.1, "sine"))
    elif sound_id == "zen-sanctuary":
        for i, f in enumerate([110, 164.81, 220, 329.63]):
            events.append(_note(f, i * 1.5, 6.0, g * 0.6, "sine"))
            events.append(_note(f + 1, i * 1.5, 6.0, g * 0.3, "sine"))
    elif sound_id == "pixel-quest":
        arp = [523.25, 659.25, 783.99, 1046.50, 880.00, 698.46, 523.25]
        for i in range(24):
            events.append(_note(arp[i % len(arp)], i * 0.15, 0.12, g, "square"))
    elif sound_id == "midnight-jazz":
        for i, f in enumerate([146.83, 185.00, 220.00, 277.18, 293.66, 220.00, 185.00, 146.83]):
            events.append(_note(f, i * 0.5, 0.5, g, "triangle"))
    elif sound_id == "panic-pulse":
        for i in range(12):
            freq = 880 if i % 2 == 0 else 440
            events.append(_note(freq, i * 0.3, 0.15, g * 2.5, "sawtooth"))
            events.append(_note(freq * 1.5, i * 0.3 + 0.1, 0.1, g * 1.5, "square"))
    elif sound_id == "ocean-waves":
        for i in range(5):
            t = i * 2.0
            events.append(_slide(100, 50, 2.0, g * 0.3, "sine", t))
            if i % 2 == 0:
                events.append(_slide(3000, 2500, 0.3, g * 0.1, "sine", t + 0.5))
    elif sound_id == "rainy-window":
        for i in range(40):
            events.append(_note(500 + rng.random() * 1000, i * 0.15, 0.05, g * 0.05, "sine"))
    elif sound_id == "starlight-lullaby":
        for i, f in enumerate([523.25, 659.25, 783.99, 659.25, 880.00, 783.99, 659.25, 523.25]):
            events.append(_note(f, i * 0.8, 1.5, g * 0.8, "sine"))
            events.append(_note(f * 2, i * 0.8, 1.0, g * 0.2, "sine"))
    elif sound_id == "techno-pulse":
        for i in range(16):
            t = i * 0.25
            events.append(_note(60, t, 0.1, g * 2, "sine"))
            events.append(_note(440, t + 0.125, 0.05, g * 0.5, "square"))
            if i % 4 == 0:
                events.append(_note(220, t, 0.2, g, "sawtooth"))
    elif sound_id == "morning-coffee":
        for i, f in enumerate([196.00, 261.63, 329.63, 392.00, 440.00, 392.00, 329.63, 261.63]):
            events.append(_note(f, i * 0.4, 0.3, g * 0.6, "triangle"))
            if i % 2 == 0:
                events.append(_note(1000, i * 0.4 + 0.1, 0.05, g * 0.1, "sine"))
    elif sound_id == "space-odyssey":
        for i in range(4):
            t = i * 2.0
            events.append(_slide(100, 400, 2.0, g * 0.4, "sine", t))
            events.append(_slide(150, 50, 2.0, g * 0.2, "triangle", t))
    else:
        events.append(_note(440, 0.0, 1.0, g))
    return events


def _oscillator(phase: np.ndarray, waveform: str) -> np.ndarray:
    if waveform == "square":
        return np.sign(np.sin(phase))
    cycles = phase / (2 * math.pi)
    saw = 2 * (cycles - np.floor(cycles + 0.5))
    if waveform == "sawtooth":
        return saw
    if waveform == "triangle":
        return 2 * np.abs(saw) - 1
    return np.sin(phase)


def _render_event(event: SoundEvent, sample_rate: int) -> np.ndarray:
    kind, _, duration, gain, waveform, freq_from, freq_to = event
    n = int(duration * sample_rate)
    if n <= 0 or gain <= 0:
        return np.zeros(max(n, 0))
    t = np.arange(n) / sample_rate

    if kind == "slide" and freq_from != freq_to:
        ratio = freq_to / freq_from
        phase = 2 * math.pi * freq_from * duration * (ratio ** (t / duration) - 1) / math.log(ratio)
        envelope = gain * (DECAY_FLOOR / gain) ** (t / duration)
    else:
        phase = 2 * math.pi * freq_from * t
        attack = min(ATTACK_SECONDS, duration / 2)
        envelope = np.empty(n)
        rising = t < attack
        envelope[rising] = gain * t[rising] / attack
        falling = ~rising
        envelope[falling] = gain * (DECAY_FLOOR / gain) ** ((t[falling] - attack) / (duration - attack))
    return _oscillator(phase, waveform) * envelope


def render_sound(sound_id: str, volume: int, sample_rate: int = SAMPLE_RATE, min_seconds: float = 0.0) -> np.ndarray:
    """Mix one pass of a sound into 16-bit mono samples, padded to ``min_seconds``."""
    events = sound_pattern(sound_id, volume)
    length = max([start + duration for _, start, duration, *_ in events] + [min_seconds])
    mix = np.zeros(int(math.ceil(length * sample_rate)))
    for event in events:
        offset = int(event[1] * sample_rate)
        rendered = _render_event(event, sample_rate)
        end = min(len(mix), offset + len(rendered))
        mix[offset:end] += rendered[: end - offset]
    return (np.clip(mix, -1.0, 1.0) * 32767).astype(np.int16)


def write_wav(path: Path, samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "w") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(samples.astype("<i2").tobytes())


def ensure_sound_file(
    sound_dir: Path,
    sound_id: str,
    volume: int,
    sample_rate: int = SAMPLE_RATE,
    min_seconds: float = 0.0,
) -> Path:
    suffix = "-loop" if min_seconds else ""
    path = sound_dir / f"{sound_id}-{volume}{suffix}.wav"
    if path.exists():
        return path
    write_wav(path, render_sound(sound_id, volume, sample_rate, min_seconds), sample_rate)
    logger.info("Generated alarm sound %s at %s", sound_id, path)
    return path


class AlarmSoundPlayer:
    def __init__(self, sound_dir: Path, sample_rate: int = SAMPLE_RATE, loop_seconds: float = LOOP_SECONDS):
        self.sound_dir = sound_dir
        self.sample_rate = sample_rate
        self.loop_seconds = loop_seconds
        self._stop_event = Event()
        self._beep_thread: Optional[Thread] = None

    def start_loop(self, sound_id: str, volume: int) -> None:
        self.stop_loop()
        self._stop_event.clear()
        if winsound:
            try:
                path = ensure_sound_file(self.sound_dir, sound_id, volume, self.sample_rate, self.loop_seconds)
                winsound.PlaySound(
                    str(path),
                    winsound.SND_FILENAME | winsound.SND_LOOP | winsound.SND_ASYNC,
                )
                return
            except (OSError, RuntimeError):
                logger.warning("winsound.PlaySound failed, falling back to beep loop", exc_info=True)

        # Generic fallback: simple beep loop in thread
        if self._beep_thread and self._beep_thread.is_alive():
            return
        self._beep_thread = Thread(target=self._beep_loop, name="alarm-beep", daemon=True)
        self._beep_thread.start()

    def stop_loop(self) -> None:
        self._stop_event.set()
        if winsound:
            try:
                winsound.PlaySound(None, winsound.SND_PURGE)
            except RuntimeError:
                logger.debug("winsound.PlaySound purge failed")

    def preview(self, sound_id: str, volume: int) -> None:
        try:
            path = ensure_sound_file(self.sound_dir, sound_id, volume, self.sample_rate)
        except OSError:
            logger.warning("Could not prepare preview for sound %s", sound_id, exc_info=True)
            return
        if not winsound:
            logger.info("Previewing sound %s (%s)", sound_id, path)
            return
        try:
            winsound.PlaySound(str(path), winsound.SND_FILENAME | winsound.SND_ASYNC)
        except RuntimeError:
            logger.warning("winsound.PlaySound preview failed for %s", sound_id)

    def _beep_loop(self) -> None:  # pragma: no cover - timing loop
        while not self._stop_event.is_set():
            if winsound:
                try:
                    winsound.Beep(880, 250)
                except RuntimeError:
                    logger.debug("winsound.Beep failed inside loop")
            else:
                logger.info("Alarm ringing...")
            self._stop_event.wait(self.loop_seconds)
