"""Voice catalogue and gender hints for speech synthesis."""

from enum import Enum


class VoiceGender(str, Enum):
    MALE = "male"
    FEMALE = "female"


DEFAULT_SPEAKER1_VOICE = "Kore"
DEFAULT_SPEAKER2_VOICE = "Aoede"

VOICE_GENDERS: dict[str, VoiceGender] = {
    "Kore": VoiceGender.MALE,
    "Charon": VoiceGender.MALE,
    "Fenrir": VoiceGender.MALE,
    "Puck": VoiceGender.MALE,
    "Orus": VoiceGender.MALE,
    "Iapetus": VoiceGender.MALE,
    "Aoede": VoiceGender.FEMALE,
    "Leda": VoiceGender.FEMALE,
    "Zephyr": VoiceGender.FEMALE,
}

NAMES_BY_GENDER: dict[VoiceGender, tuple[str, ...]] = {
    VoiceGender.MALE: (
        "Tom", "David", "John", "Michael", "James",
        "Robert", "William", "Richard", "Daniel", "Mark",
    ),
    VoiceGender.FEMALE: (
        "Sarah", "Emma", "Lisa", "Anna", "Maria",
        "Sophie", "Rachel", "Laura", "Helen", "Kate",
    ),
}


def voice_gender(voice_name: str) -> VoiceGender:
    """Gender of a prebuilt voice; unknown voices count as male."""
    return VOICE_GENDERS.get(voice_name, VoiceGender.MALE)


def name_gender(name: str) -> VoiceGender | None:
    lowered = name.strip().lower()
    for gender, names in NAMES_BY_GENDER.items():
        if lowered in {n.lower() for n in names}:
            return gender
    return None


def build_gender_constraint(primary_voice: str, has_second_speaker: bool) -> str:
    """Prompt fragment keeping character names consistent with the voices."""
    primary = voice_gender(primary_voice)
    other = VoiceGender.FEMALE if primary == VoiceGender.MALE else VoiceGender.MALE
    primary_names = ", ".join(NAMES_BY_GENDER[primary][:5])
    other_names = ", ".join(NAMES_BY_GENDER[other][:5])
    contradiction = "I am a mother" if primary == VoiceGender.MALE else "I am a father"

    constraint = (
        "\nCRITICAL - VOICE-GENDER SYNCHRONIZATION:\n"
        f"- The MAIN SPEAKER (Speaker1) for this audio is {primary.value.upper()}.\n"
        f"- You MUST assign Speaker1 a {primary.value} name (e.g., {primary_names}).\n"
        "- You MUST NOT write self-identifying phrases that contradict this gender.\n"
        f'- DO NOT use phrases like "{contradiction}" or names of the wrong gender.'
    )
    if has_second_speaker:
        constraint += (
            f"\n- The SECOND SPEAKER (Speaker2) should be {other.value.upper()} "
            "for voice distinctiveness.\n"
            f"- Assign Speaker2 a {other.value} name (e.g., {other_names})."
        )
    return constraint
