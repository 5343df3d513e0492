"""Splitting labelled dialogue scripts into per-voice speech segments."""

import re
from dataclasses import dataclass

from src.modules.audio.voices import VoiceGender, name_gender, voice_gender

SPEAKER_LINE_PATTERN = re.compile(r"^([^:]{1,40}):\s*(.+)$")
BREAK_TAG_PATTERN = re.compile(r"<break[^>]*/>", re.IGNORECASE)
MARKUP_TAG_PATTERN = re.compile(r"</?[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")

NARRATOR_LABEL = "Narrator"

FIXED_LABELS = {
    "speaker1": 0,
    "speakerone": 0,
    "speaker2": 1,
    "speakertwo": 1,
}


@dataclass
class SpeechSegment:
    voice_name: str
    text: str


@dataclass(frozen=True)
class ScriptLine:
    label: str
    text: str


def split_script_lines(script: str) -> list[ScriptLine]:
    """Non-empty lines of ``script`` with their speaker label, if any."""
    lines = []
    for raw in re.split(r"\r?\n", script):
        line = raw.strip()
        if not line:
            continue
        match = SPEAKER_LINE_PATTERN.match(line)
        if match:
            lines.append(ScriptLine(match.group(1).strip(), match.group(2).strip()))
        else:
            lines.append(ScriptLine(NARRATOR_LABEL, line))
    return lines


def detect_speaker_labels(script: str) -> list[str]:
    """Distinct speaker labels in order of first appearance."""
    labels: list[str] = []
    for raw in re.split(r"\r?\n", script):
        match = SPEAKER_LINE_PATTERN.match(raw.strip())
        if match:
            label = match.group(1).strip()
            if label not in labels:
                labels.append(label)
    return labels


def clean_segment_text(text: str) -> str:
    text = BREAK_TAG_PATTERN.sub(" ... ", text)
    text = MARKUP_TAG_PATTERN.sub("", text)
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def _normalize_label(label: str) -> str:
    return WHITESPACE_PATTERN.sub("", label).lower()


class VoiceAssigner:
    """Maps speaker labels to one of two voices, stable for a whole script."""

    def __init__(self, primary_voice: str, secondary_voice: str):
        self.voices = (primary_voice, secondary_voice)
        self._assigned: dict[str, str] = {}
        self._round_robin = 0

    def voice_for(self, label: str) -> str:
        normalized = _normalize_label(label)
        if normalized in FIXED_LABELS:
            return self.voices[FIXED_LABELS[normalized]]

        if normalized not in self._assigned:
            self._assigned[normalized] = self._pick(label)
        return self._assigned[normalized]

    def _pick(self, label: str) -> str:
        first_name = label.split()[0] if label.split() else label
        gender = name_gender(first_name)
        if gender is not None:
            for voice in self.voices:
                if voice_gender(voice) == gender:
                    return voice
            return self.voices[1] if gender == VoiceGender.FEMALE else self.voices[0]

        voice = self.voices[self._round_robin % len(self.voices)]
        self._round_robin += 1
        return voice


def build_segments(script: str, assigner: VoiceAssigner) -> list[SpeechSegment]:
    """Voice-tagged segments with consecutive same-voice lines merged."""
    segments: list[SpeechSegment] = []
    for line in split_script_lines(script):
        text = clean_segment_text(line.text)
        if not text:
            continue
        voice = assigner.voice_for(line.label)
        if segments and segments[-1].voice_name == voice:
            segments[-1].text = f"{segments[-1].text} {text}"
        else:
            segments.append(SpeechSegment(voice_name=voice, text=text))
    return segments
