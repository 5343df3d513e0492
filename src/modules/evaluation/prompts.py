"""Prompts for grading and explaining answers."""

import string
from typing import Any

SPEAKING_CRITERIA_GUIDE = """CRITICAL SCORING GUIDELINES (USE CONSISTENTLY - SAME SCALE FOR FULL TEST OR INDIVIDUAL PARTS):
You MUST score each criterion INDEPENDENTLY based on the specific evidence you observe.

FLUENCY & COHERENCE (assess speech flow and organization):
- Band 9: Speaks fluently with only rare repetition or self-correction
- Band 7: Speaks at length without noticeable effort; uses a range of connectives
- Band 5: Usually maintains flow but uses repetition, self-correction and/or slow speech
- Band 3: Speaks with long pauses; limited ability to link simple sentences

LEXICAL RESOURCE (assess vocabulary range and precision):
- Band 9: Uses vocabulary with full flexibility and precision; idiomatic language is natural
- Band 7: Uses vocabulary flexibly; some less common and idiomatic vocabulary
- Band 5: Talks about familiar and unfamiliar topics with limited flexibility
- Band 3: Simple vocabulary only; insufficient for less familiar topics

GRAMMATICAL RANGE & ACCURACY (assess sentence structures and error frequency):
- Band 9: Full range of structures, consistently accurate
- Band 7: Range of complex structures; frequently error-free sentences
- Band 5: Basic forms with reasonable accuracy; complex structures contain errors
- Band 3: Attempts basic forms with limited success; frequent errors

PRONUNCIATION (assess clarity, intonation, stress patterns):
- Band 9: Full range of features with precision; effortless to understand
- Band 7: Generally easy to understand
- Band 5: May mispronounce some words
- Band 3: Causes some strain for the listener

IMPORTANT SCORING NOTES:
- Score each criterion based ONLY on the evidence relevant to that skill
- Use half-band scores (5.5, 6.5, 7.5) when performance falls between bands
- The overall band is the average of the four criteria, rounded to the nearest 0.5
- Apply the SAME standard for a single part or the full test"""

SPEAKING_RESPONSE_SCHEMA = """Respond with JSON in this exact format:
{
  "overallBand": number,
  "fluencyCoherence": { "score": number, "feedback": string, "examples": string[] },
  "lexicalResource": { "score": number, "feedback": string, "examples": string[], "lexicalUpgrades": [{"original": string, "upgraded": string, "context": string}] },
  "grammaticalRange": { "score": number, "feedback": string, "examples": string[] },
  "pronunciation": { "score": number, "feedback": string },
  "partAnalysis": [{"partNumber": number, "strengths": string[], "improvements": string[]}],
  "modelAnswers": [
    {"partNumber": number, "questionNumber": number, "question": string, "candidateResponse": string, "modelAnswer": string, "keyFeatures": string[]}
  ],
  "summary": string,
  "keyStrengths": string[],
  "priorityImprovements": string[],
  "transcripts": { "part1-q<id>": string }
}

CRITICAL: The "modelAnswers" array MUST contain an entry for EVERY question from ALL parts."""

# Recordings shorter than this (base64 characters) carry no usable speech
MIN_AUDIO_BASE64_LENGTH = 1000


def speaking_system_prompt(
    topic: str | None,
    difficulty: str | None,
    part2_speaking_duration: float | None,
    fluency_flag: bool,
) -> str:
    context = ""
    if topic:
        context += f"TEST TOPIC: {topic}\n"
    if difficulty:
        context += f"DIFFICULTY: {difficulty}\n"
    if part2_speaking_duration is not None:
        context += f"PART 2 SPEAKING DURATION: {int(part2_speaking_duration)} seconds\n"
    if fluency_flag:
        context += "FLUENCY FLAG: Part 2 was below 80 seconds\n"

    return f"""You are an expert IELTS Speaking examiner (2025 standard). You will be given:
- The test context (topic/difficulty)
- The exact questions
- Audio recordings for each question

You MUST base the score on what you hear in the audio.
If there is no speech in the audio, score appropriately and explain why.

{context}
{SPEAKING_CRITERIA_GUIDE}

MODEL ANSWERS REQUIREMENT:
For each question show what the candidate actually said (candidateResponse), an exemplary
Band 8-9 model answer, and the key features that make the model answer strong.

{SPEAKING_RESPONSE_SCHEMA}"""


def strip_data_url(value: str) -> str:
    """Base64 payload of a data URL, or the value unchanged."""
    comma = value.find(",")
    return value[comma + 1 :] if comma >= 0 else value


def audio_key(part_number: int, question_id: str) -> str:
    return f"part{part_number}-q{question_id}"


def build_speaking_contents(
    parts: list[Any],
    audio_data: dict[str, str],
    topic: str | None,
    difficulty: str | None,
    part2_speaking_duration: float | None,
    fluency_flag: bool,
    audio_mime_type: str = "audio/webm",
) -> list[dict[str, Any]]:
    """Gemini content parts interleaving question text with the candidate's audio."""
    contents: list[dict[str, Any]] = [
        {
            "text": speaking_system_prompt(
                topic, difficulty, part2_speaking_duration, fluency_flag
            )
        }
    ]

    for part in sorted(parts, key=lambda p: p.part_number):
        header = f"\nPART {part.part_number}\n"
        if part.instruction:
            header += f"Instruction: {part.instruction}\n"
        contents.append({"text": header})

        if part.part_number == 2:
            if part.cue_card_topic:
                contents.append({"text": f"Cue Card Topic: {part.cue_card_topic}\n"})
            if part.cue_card_content:
                contents.append({"text": f"Cue Card Content:\n{part.cue_card_content}\n"})

        for question in part.questions:
            key = audio_key(part.part_number, question.id)
            contents.append(
                {
                    "text": f"\nQuestion {question.question_number}: "
                    f"{question.question_text}\nAudio key: {key}\n"
                }
            )
            audio = strip_data_url(audio_data.get(key) or "")
            if len(audio) > MIN_AUDIO_BASE64_LENGTH:
                contents.append({"inlineData": {"mimeType": audio_mime_type, "data": audio}})
                contents.append(
                    {
                        "text": "Transcribe the candidate's speech for this audio and store it "
                        f'in the JSON field "transcripts" under the key "{key}". If there is '
                        'no speech, write "No speech detected" for this key.'
                    }
                )
            else:
                contents.append(
                    {
                        "text": f"No usable audio was provided for {key}. "
                        f'Set transcripts["{key}"] = "No speech detected".'
                    }
                )

    contents.append(
        {
            "text": "\nReturn ONLY a single valid JSON object matching the requested "
            "schema. Do not add markdown."
        }
    )
    return contents


def writing_evaluation_prompt(tasks: list[Any]) -> str:
    task_blocks = []
    for task in tasks:
        main_criterion = "task_achievement" if task.task_number == 1 else "task_response"
        block = (
            f"TASK {task.task_number}\n"
            f"Question: {task.instruction}\n"
        )
        if task.visual_description:
            block += f"Visual description: {task.visual_description}\n"
        block += (
            f"Main criterion key: {main_criterion}\n"
            f'Candidate response ({len(task.response_text.split())} words):\n"""{task.response_text}"""\n'
        )
        task_blocks.append(block)

    tasks_text = "\n".join(task_blocks)
    return f"""You are an expert IELTS Writing examiner (2025 standard). Grade the candidate's
writing using the official band descriptors for Task Achievement (Task 1) or Task Response
(Task 2), Coherence and Cohesion, Lexical Resource, and Grammatical Range and Accuracy.

Score each criterion independently. Use half bands where performance falls between bands.
Penalise responses under the minimum word count (150 for Task 1, 250 for Task 2).

{tasks_text}

Respond with JSON in this exact format:
{{
  "overall_band": number,
  "task1_band": number or null,
  "task2_band": number or null,
  "task1_evaluation": TaskEvaluation or null,
  "task2_evaluation": TaskEvaluation or null,
  "combined_feedback": {{
    "overall_assessment": string,
    "writing_style_notes": string,
    "time_management_tips": string,
    "next_steps": string[]
  }}
}}

where TaskEvaluation is:
{{
  "task_achievement" or "task_response": Criterion,
  "coherence_cohesion": Criterion,
  "lexical_resource": Criterion,
  "grammatical_accuracy": Criterion,
  "overall_feedback": string,
  "key_strengths": string[],
  "priority_improvements": string[],
  "model_paragraph": string
}}

and Criterion is:
{{
  "band": number,
  "feedback": string,
  "strengths": string[],
  "weaknesses": string[],
  "examples": string[],
  "vocabulary_upgrades": [{{"original": string, "suggested": string, "context": string}}],
  "error_corrections": [{{"error": string, "correction": string, "explanation": string}}]
}}

The overall band is the average of the task bands, with Task 2 weighted double when both are present."""


def _options_text(options: Any) -> str:
    if isinstance(options, list) and options:
        lines = [f"{string.ascii_uppercase[i]}. {opt}" for i, opt in enumerate(options[:26])]
    elif isinstance(options, dict) and options:
        lines = [f"{key}. {value}" for key, value in options.items()]
    else:
        return ""
    return "\n\nAvailable Options:\n" + "\n".join(lines)


def _split_answers(value: str | None) -> list[str]:
    return [a.strip() for a in (value or "").split(",") if a.strip()]


def explain_answer_prompt(
    question_text: str,
    user_answer: str | None,
    correct_answer: str,
    is_correct: bool,
    options: Any = None,
    question_type: str | None = None,
    transcript_context: str | None = None,
    passage_context: str | None = None,
    test_type: str = "reading",
) -> str:
    is_listening = test_type == "listening"
    test_label = "IELTS Listening" if is_listening else "IELTS Reading"
    type_label = f" ({question_type.replace('_', ' ').lower()})" if question_type else ""

    multiple_answers = ""
    if question_type == "MULTIPLE_CHOICE_MULTIPLE":
        chosen = _split_answers(user_answer)
        expected = _split_answers(correct_answer)
        right = [a for a in chosen if a in expected]
        wrong = [a for a in chosen if a not in expected]
        missed = [a for a in expected if a not in chosen]
        multiple_answers = f"""
This is a MULTIPLE CHOICE MULTIPLE ANSWERS question where the student must select {len(expected)} correct answers.
- Student selected: {", ".join(chosen) or "(none)"}
- Correct answers are: {", ".join(expected)}
- Correctly identified: {", ".join(right) or "(none)"}
- Incorrectly selected: {", ".join(wrong) or "(none)"}
- Missed: {", ".join(missed) or "(none)"}

IMPORTANT: Address each selection individually."""

    if is_correct:
        goal = "why a student's answer was correct"
        focus = "Explain what made this the correct answer and reinforce the key concept"
    else:
        goal = "why a student's answer was incorrect"
        focus = (
            "First explain specifically why the student's answer is wrong, "
            "then explain why the correct answer is right"
        )
    source = "transcript" if is_listening else "passage"

    context = ""
    if transcript_context and transcript_context.strip():
        context += f'\n\nRelevant Audio Transcript:\n"""{transcript_context}"""'
    if passage_context and passage_context.strip():
        context += f'\n\nRelevant Reading Passage:\n"""{passage_context}"""'

    return f"""You are an expert {test_label} tutor. Your task is to explain {goal} in a helpful and educational way.

Guidelines:
- Be concise but thorough (4-6 sentences)
- {focus}
- If {source} context is provided, reference the specific part that contains the answer
- If options are provided, explain why the correct option is right and briefly why the student's choice is wrong
- Provide helpful tips for similar questions in the future
- Be encouraging and use simple, clear language
- If the provided correct answer seems wrong, say so and suggest reporting it to the admin
{multiple_answers}

Question Type: {test_label}{type_label}

Question: {question_text}{_options_text(options)}{context}

Student's Answer: {user_answer or "(No answer provided)"}
Correct Answer: {correct_answer}"""
