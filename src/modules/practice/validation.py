"""Shape checks for generated practice payloads.

Each validator returns a description of the first problem found, or ``None``
when the payload is usable. The orchestrator treats a problem as malformed
output and falls back to the next model.
"""

from typing import Any


def _questions_problem(payload: dict[str, Any]) -> str | None:
    questions = payload.get("questions")
    if not isinstance(questions, list) or not questions:
        return "Missing or empty questions array in AI response"
    for question in questions:
        if not isinstance(question, dict) or not question.get("correct_answer"):
            number = question.get("question_number", "?") if isinstance(question, dict) else "?"
            return f"Question {number} missing correct_answer"
    return None


def validate_reading(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return "Expected a JSON object"
    passage = payload.get("passage")
    if not isinstance(passage, dict) or not passage.get("content"):
        return "Missing passage content in AI response"
    return _questions_problem(payload)


def validate_listening(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return "Expected a JSON object"
    dialogue = payload.get("dialogue")
    if not isinstance(dialogue, str) or len(dialogue.strip()) < 50:
        return "Missing or too short dialogue in AI response"
    if not isinstance(payload.get("instruction"), str) or not payload["instruction"]:
        return "Missing instruction in AI response"
    return _questions_problem(payload)


def validate_writing(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return "Expected a JSON object"
    if not isinstance(payload.get("instruction"), str) or not payload["instruction"].strip():
        return "Missing instruction in AI response"
    return None


def validate_speaking(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return "Expected a JSON object"
    parts = payload.get("parts")
    if not isinstance(parts, list) or not parts:
        return "Missing or empty parts array in AI response"
    return None
