"""Prompt builders for practice test generation."""

import random
from dataclasses import dataclass

IELTS_TOPICS = [
    "Climate change and environmental conservation",
    "The impact of technology on modern society",
    "Education systems around the world",
    "Health and wellness in the 21st century",
    "Urbanization and city planning",
    "Wildlife conservation and biodiversity",
    "The role of art and culture in society",
    "Space exploration and scientific discovery",
    "Global tourism and its effects",
    "Sustainable energy solutions",
    "Ancient civilizations and archaeology",
    "Marine ecosystems and ocean conservation",
    "The future of transportation",
    "Digital communication and social media",
    "Food security and agriculture",
]


@dataclass(frozen=True)
class ListeningScenario:
    type: str
    description: str


LISTENING_SCENARIOS = [
    ListeningScenario("conversation", "a casual conversation between two people"),
    ListeningScenario("lecture", "a short educational lecture or presentation"),
    ListeningScenario("interview", "an interview about a specific topic"),
    ListeningScenario("tour", "a guided tour of a facility or location"),
    ListeningScenario("phone_call", "a phone conversation about booking or inquiry"),
]

LISTENING_AUDIO_MINUTES = 1
LISTENING_QUESTION_COUNT = 7
LISTENING_WORD_COUNT = 150

WRITING_VISUAL_TYPES = ["BAR_CHART", "LINE_GRAPH", "PIE_CHART", "TABLE", "PROCESS_DIAGRAM", "MAP"]

ESSAY_FORMAT_GUIDE = {
    "OPINION": "To what extent do you agree or disagree?",
    "DISCUSSION": "Discuss both views and give your own opinion.",
    "PROBLEM_SOLUTION": "What are the causes of this problem and what solutions can you suggest?",
    "ADVANTAGES_DISADVANTAGES": "What are the advantages and disadvantages of this?",
    "TWO_PART_QUESTION": "Include two related questions that the student must address.",
}

SPEAKING_PARTS = ("PART_1", "PART_2", "PART_3")

MONOLOGUE_REWRITE_PROMPT = """Rewrite the following dialogue as a detailed monologue or narration.
Remove all speaker labels (e.g., "Speaker1:", "Speaker2:", names followed by colons).
Convert the conversation into a flowing narrative that a single narrator would read aloud.
Keep ALL factual information, numbers, dates, names, and details that would be needed to answer test questions.
Keep SSML break tags like <break time='500ms'/> for pacing. Never use pauses longer than 1 second.
Return ONLY the raw monologue text, no JSON wrapper.

DIALOGUE TO CONVERT:
{dialogue}"""


def difficulty_description(difficulty: str) -> str:
    return {
        "easy": "Band 5-5.5",
        "medium": "Band 6-6.5",
        "hard": "Band 7-7.5",
    }.get(
        difficulty,
        "Band 8-9 (Expert level - extremely challenging, requires near-native "
        "comprehension, subtle inferences, and mastery of nuanced vocabulary)",
    )


def pick_topic(topic: str | None) -> str:
    return topic.strip() if topic and topic.strip() else random.choice(IELTS_TOPICS)


def pick_scenario() -> ListeningScenario:
    return random.choice(LISTENING_SCENARIOS)


# Question-type specific instruction and JSON example, shared by reading and listening.
# Extra top-level keys listed here are copied into the question group's options.
@dataclass(frozen=True)
class QuestionFormat:
    task: str
    instruction: str
    example_question: str
    extra_fields: str = ""
    group_keys: tuple[str, ...] = ()


QUESTION_FORMATS: dict[str, QuestionFormat] = {
    "TRUE_FALSE_NOT_GIVEN": QuestionFormat(
        task="Create {count} True/False/Not Given questions based on the text.",
        instruction=(
            "Do the following statements agree with the information given? "
            "Write TRUE, FALSE, or NOT GIVEN."
        ),
        example_question=(
            '{"question_number": 1, "question_text": "Statement about the text", '
            '"correct_answer": "TRUE", "explanation": "Why this is the correct answer"}'
        ),
    ),
    "YES_NO_NOT_GIVEN": QuestionFormat(
        task="Create {count} Yes/No/Not Given questions about the writer's views.",
        instruction=(
            "Do the following statements agree with the views of the writer? "
            "Write YES, NO, or NOT GIVEN."
        ),
        example_question=(
            '{"question_number": 1, "question_text": "Claim attributed to the writer", '
            '"correct_answer": "YES", "explanation": "Why this is the correct answer"}'
        ),
    ),
    "MULTIPLE_CHOICE": QuestionFormat(
        task="Create {count} multiple choice questions (single answer).",
        instruction="Choose the correct letter, A, B, C or D.",
        example_question=(
            '{"question_number": 1, "question_text": "The question?", '
            '"options": ["A First option", "B Second option", "C Third option", '
            '"D Fourth option"], "correct_answer": "A", "explanation": "Why A is correct"}'
        ),
    ),
    "MULTIPLE_CHOICE_MULTIPLE": QuestionFormat(
        task=(
            "Create ONE multiple choice question set where test-takers select THREE "
            "correct answers from six options (A-F). Return EXACTLY 3 identical question "
            "objects numbered 1 to 3. The correct_answer is a comma-separated list of 3 "
            "letters and must not always use the same letters."
        ),
        instruction="Questions 1-3. Choose THREE letters, A-F.",
        example_question=(
            '{"question_number": 1, "question_text": "Which THREE of the following are true?", '
            '"options": ["A ...", "B ...", "C ...", "D ...", "E ...", "F ..."], '
            '"correct_answer": "A,C,E", "explanation": "A, C and E are stated", "max_answers": 3}'
        ),
        extra_fields='"max_answers": 3,',
    ),
    "MATCHING_HEADINGS": QuestionFormat(
        task=(
            "Create {count} matching headings questions. Provide more headings than "
            "paragraphs, labelled with lower-case roman numerals."
        ),
        instruction="Choose the correct heading for each paragraph from the list of headings below.",
        example_question=(
            '{"question_number": 1, "question_text": "Paragraph A", '
            '"correct_answer": "iii", "explanation": "Paragraph A focuses on ..."}'
        ),
        extra_fields='"headings": ["i Heading one", "ii Heading two", "iii Heading three"],',
        group_keys=("headings",),
    ),
    "MATCHING_INFORMATION": QuestionFormat(
        task="Create {count} matching information questions referring to paragraph letters.",
        instruction="Which paragraph contains the following information?",
        example_question=(
            '{"question_number": 1, "question_text": "a reference to ...", '
            '"correct_answer": "B", "explanation": "Paragraph B mentions ..."}'
        ),
        extra_fields='"options": ["A", "B", "C", "D", "E", "F"],',
        group_keys=("options",),
    ),
    "FILL_IN_BLANK": QuestionFormat(
        task=(
            "Create {count} fill-in-the-blank questions. Vary the position of the blank "
            "(_____) across the start, middle and end of sentences."
        ),
        instruction="Complete the notes below. Write NO MORE THAN THREE WORDS AND/OR A NUMBER for each answer.",
        example_question=(
            '{"question_number": 1, "question_text": "The tour lasts approximately _____.", '
            '"correct_answer": "45 minutes", "explanation": "The duration is stated"}'
        ),
    ),
    "SENTENCE_COMPLETION": QuestionFormat(
        task="Create {count} sentence completion questions.",
        instruction="Complete the sentences below. Write NO MORE THAN TWO WORDS for each answer.",
        example_question=(
            '{"question_number": 1, "question_text": "Researchers first studied the site in _____.", '
            '"correct_answer": "1998", "explanation": "The year is given"}'
        ),
    ),
    "SUMMARY_COMPLETION": QuestionFormat(
        task="Create a summary with {count} gaps and a word bank of letter-labelled options.",
        instruction="Complete the summary using the list of words, A-H, below.",
        example_question=(
            '{"question_number": 1, "question_text": "Gap 1", '
            '"correct_answer": "C", "explanation": "The summary refers to ..."}'
        ),
        extra_fields='"summary_text": "Text with (1) _____ gaps", "word_bank": ["A word", "B word"],',
        group_keys=("summary_text", "word_bank"),
    ),
    "MATCHING_SENTENCE_ENDINGS": QuestionFormat(
        task="Create {count} sentence beginnings and more sentence endings than beginnings.",
        instruction="Complete each sentence with the correct ending, A-G, below.",
        example_question=(
            '{"question_number": 1, "question_text": "The early settlers", '
            '"correct_answer": "D", "explanation": "Ending D follows from ..."}'
        ),
        extra_fields='"sentence_beginnings": ["The early settlers"], "sentence_endings": ["A ...", "B ..."],',
        group_keys=("sentence_beginnings", "sentence_endings"),
    ),
    "TABLE_COMPLETION": QuestionFormat(
        task="Create a table with {count} gaps marked by question numbers.",
        instruction="Complete the table below. Write NO MORE THAN TWO WORDS AND/OR A NUMBER for each answer.",
        example_question=(
            '{"question_number": 1, "question_text": "Cost of a single ticket", '
            '"correct_answer": "12 pounds", "explanation": "The price is stated"}'
        ),
        extra_fields='"table_data": {"headers": ["Item", "Detail"], "rows": [["Ticket", "(1) _____"]]},',
        group_keys=("table_data",),
    ),
    "FLOWCHART_COMPLETION": QuestionFormat(
        task="Create a flowchart of a process with {count} gaps.",
        instruction="Complete the flowchart below. Write NO MORE THAN TWO WORDS for each answer.",
        example_question=(
            '{"question_number": 1, "question_text": "Step 2", '
            '"correct_answer": "filtration", "explanation": "The second stage is ..."}'
        ),
        extra_fields='"flowchart_title": "Process", "flowchart_steps": ["Collection", "(1) _____"],',
        group_keys=("flowchart_title", "flowchart_steps"),
    ),
    "NOTE_COMPLETION": QuestionFormat(
        task="Create structured notes with {count} gaps.",
        instruction="Complete the notes below. Write ONE WORD ONLY for each answer.",
        example_question=(
            '{"question_number": 1, "question_text": "Main material: _____", '
            '"correct_answer": "limestone", "explanation": "The material is named"}'
        ),
        extra_fields='"note_sections": [{"title": "Building", "items": ["Main material: (1) _____"]}],',
        group_keys=("note_sections",),
    ),
    "MATCHING_CORRECT_LETTER": QuestionFormat(
        task="Create {count} items to match with a shared list of lettered options.",
        instruction="Choose the correct letter, A-E, for each item.",
        example_question=(
            '{"question_number": 1, "question_text": "The library", '
            '"correct_answer": "B", "explanation": "The speaker links the library to ..."}'
        ),
        extra_fields='"options": ["A opens early", "B needs a card", "C is closed on Sunday"],',
        group_keys=("options",),
    ),
}

DEFAULT_QUESTION_TYPE = "MULTIPLE_CHOICE"


def question_format(question_type: str) -> QuestionFormat:
    key = "MULTIPLE_CHOICE" if question_type == "MULTIPLE_CHOICE_SINGLE" else question_type
    if key == "SHORT_ANSWER":
        key = "FILL_IN_BLANK"
    if key == "SUMMARY_WORD_BANK":
        key = "SUMMARY_COMPLETION"
    return QUESTION_FORMATS.get(key, QUESTION_FORMATS[DEFAULT_QUESTION_TYPE])


def build_reading_prompt(
    question_type: str,
    topic: str,
    difficulty: str,
    question_count: int,
    paragraph_count: int = 6,
    word_count: int = 750,
) -> str:
    labels = ", ".join(f"[{chr(65 + i)}]" for i in range(paragraph_count))
    fmt = question_format(question_type)
    return f"""Generate an IELTS Academic Reading test with the following specifications:

Topic: {topic}
Difficulty: {difficulty} ({difficulty_description(difficulty)})

Requirements:
1. Create a reading passage with these specifications:
   - Total word count: approximately {word_count} words (strict: between {word_count - 50} and {word_count + 100} words)
   - Number of paragraphs: {paragraph_count} paragraphs, labeled {labels}
   - Each paragraph should be 80-150 words (official IELTS standard)
   - Academic in tone and style
   - Contains specific information that can be tested
   - Appropriate for the {difficulty} difficulty level

2. {fmt.task.format(count=question_count)}

Return ONLY valid JSON in this exact format:
{{
  "passage": {{
    "title": "The title of the passage",
    "content": "The full passage text with paragraph labels like [A], [B], etc."
  }},
  "instruction": "{fmt.instruction}",
  {fmt.extra_fields}
  "questions": [
    {fmt.example_question}
  ]
}}"""


SSML_PACING = """
   CRITICAL AUDIO PACING - NATURAL PAUSES ONLY:
   - Insert <break time='500ms'/> between sentences and speaker turns
   - Insert <break time='300ms'/> for natural pauses within speech
   - NEVER use pauses longer than 1 second"""


def build_listening_prompt(
    question_type: str,
    topic: str,
    difficulty: str,
    scenario: ListeningScenario,
    use_two_speakers: bool,
    gender_constraint: str = "",
) -> str:
    word_range = f"{LISTENING_WORD_COUNT - 50}-{LISTENING_WORD_COUNT + 50}"
    seconds = LISTENING_AUDIO_MINUTES * 60

    if use_two_speakers:
        speakers = f"""1. Create a dialogue script between two characters that is:
   - {word_range} words total (approximately {seconds} seconds when spoken)
   - Natural and conversational with realistic names or roles
   - In the dialogue field, you MUST use "Speaker1:" and "Speaker2:" prefixes for TTS processing
   - ALSO include a "speaker_names" object mapping Speaker1/Speaker2 to their real names
   - Contains specific details (names, numbers, dates, locations)
   {SSML_PACING}"""
        names_example = '{"Speaker1": "Sarah", "Speaker2": "Receptionist"}'
    else:
        speakers = f"""1. Create a monologue script by a single speaker that is:
   - {word_range} words total (approximately {seconds} seconds when spoken)
   - Clear and informative, like a tour guide, lecturer, or announcer
   - Use "Speaker1:" prefix for all lines (required for TTS)
   - ALSO include a "speaker_names" object: {{"Speaker1": "Appropriate Role/Title"}}
   - Contains specific details (names, numbers, dates, locations)
   {SSML_PACING}"""
        names_example = '{"Speaker1": "Tour Guide"}'

    fmt = question_format(question_type)
    return f"""Generate an IELTS Listening test section with the following specifications:

Topic: {topic}
Scenario: {scenario.description}
Difficulty: {difficulty} ({difficulty_description(difficulty)})
FIXED PARAMETERS: {LISTENING_AUDIO_MINUTES} minutes audio, {LISTENING_QUESTION_COUNT} questions

Requirements:
{speakers}
{gender_constraint}

2. {fmt.task.format(count=LISTENING_QUESTION_COUNT)}

Return ONLY valid JSON:
{{
  "dialogue": "Speaker1: Hello, welcome...<break time='500ms'/>\\nSpeaker2: Thank you...",
  "speaker_names": {names_example},
  "instruction": "{fmt.instruction}",
  {fmt.extra_fields}
  "questions": [
    {fmt.example_question}
  ]
}}"""


def build_writing_task1_prompt(topic: str, difficulty: str, visual_type: str) -> str:
    readable = visual_type.replace("_", " ").lower()
    return f"""You are a data analyst. Generate an IELTS Academic Writing Task 1 with BOTH the essay question AND the chart/diagram data.

Topic: {topic}
Difficulty: {difficulty}
Visual Type: {visual_type}

CRITICAL INSTRUCTIONS:
1. The instruction must start with "The {readable} below shows..."
2. Include: "Summarise the information by selecting and reporting the main features, and make comparisons where relevant."
3. End with: "Write at least 150 words."

Return this EXACT JSON structure:
{{
  "task_type": "task1",
  "instruction": "The {readable} below shows [specific description]. Summarise the information by selecting and reporting the main features, and make comparisons where relevant. Write at least 150 words.",
  "visual_type": "{visual_type}",
  "visualData": {{"type": "{visual_type}", "title": "Chart title", "data": [{{"label": "Category A", "value": 45}}]}}
}}

IMPORTANT: Use whole numbers. Keep all labels under 15 characters."""


def build_writing_task2_prompt(topic: str, difficulty: str, essay_type: str) -> str:
    guide = ESSAY_FORMAT_GUIDE.get(essay_type, "")
    return f"""Generate an IELTS Academic Writing Task 2.
Topic: {topic}
Difficulty: {difficulty}
Essay Type: {essay_type}

IMPORTANT: The instruction must follow official IELTS format exactly:
- Start with a statement or context about a topic
- Present the main question/argument
- End with the appropriate question format for {essay_type}: "{guide}"
- Include: "Give reasons for your answer and include any relevant examples from your own knowledge or experience."
- End with: "Write at least 250 words."

Return this EXACT JSON structure:
{{
  "task_type": "task2",
  "instruction": "[Context statement about the topic]. [Main argument or question]. {guide} Give reasons for your answer and include any relevant examples from your own knowledge or experience. Write at least 250 words.",
  "essay_type": "{essay_type}"
}}"""


def _speaking_part_example(part: int) -> str:
    if part == 2:
        return """{
      "part_number": 2,
      "instruction": "Now, I'm going to give you a topic and I'd like you to talk about it for one to two minutes. Before you talk, you'll have one minute to think about what you're going to say. You can make some notes if you wish.",
      "cue_card_topic": "Describe [something related to topic]",
      "cue_card_content": "You should say:\\n- first bullet point\\n- second bullet point\\n- third bullet point\\n- and explain why...",
      "questions": [{ "question_number": 1, "question_text": "Optional rounding-off question" }],
      "preparation_time_seconds": 60,
      "speaking_time_seconds": 120
    }"""
    intro = (
        "Now, in this first part, I'd like to ask you some questions about yourself. "
        "Let's talk about [specific topic]..."
        if part == 1
        else "We've been talking about [Part 2 topic] and I'd like to discuss one or two "
        "more general questions related to this."
    )
    return f"""{{
      "part_number": {part},
      "instruction": "{intro}",
      "questions": [
        {{ "question_number": 1, "question_text": "First question?" }},
        {{ "question_number": 2, "question_text": "Second question?" }},
        {{ "question_number": 3, "question_text": "Third question?" }},
        {{ "question_number": 4, "question_text": "Fourth question?" }}
      ],
      "time_limit_seconds": 300
    }}"""


def speaking_parts_for(question_type: str) -> list[int]:
    if question_type in SPEAKING_PARTS:
        return [SPEAKING_PARTS.index(question_type) + 1]
    return [1, 2, 3]


def build_speaking_prompt(topic: str, difficulty: str, parts: list[int]) -> str:
    part_names = ", ".join(f"Part {p}" for p in parts)
    examples = ",\n    ".join(_speaking_part_example(p) for p in parts)
    return f"""Generate an official IELTS Speaking test with proper examiner phrases.

TOPIC: {topic}
DIFFICULTY: {difficulty}
PARTS TO INCLUDE: {part_names}

OFFICIAL IELTS SPEAKING TEST FORMAT:
- Part 1 (Introduction & Interview): 4-5 simple questions on familiar topics, 20-30 second answers.
- Part 2 (Individual Long Turn): a cue card "Describe ..." with "You should say:" and 3-4 prompts.
- Part 3 (Two-way Discussion): 4-5 abstract questions extending the Part 2 topic, 45-60 second answers.

Return ONLY valid JSON:
{{
  "topic": "{topic}",
  "parts": [
    {examples}
  ]
}}

Generate realistic, {difficulty}-level questions appropriate for IELTS. Make questions coherent and thematically connected."""
