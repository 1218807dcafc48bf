"""Prompt templates for the study assistant.

Each builder returns a plain string; the service layer decides whether it is
sent as the user prompt or as run instructions.
"""

from __future__ import annotations

from typing import Sequence

from app.modules.ai.models import Subject, UserAnswer


SUMMARY_PROMPT = (
    "Summarize the following document titled \"{name}\" into concise key points "
    "and definitions suitable for a student's study notes. Format the result as "
    "clean markdown: open with a heading, list key concepts as bullet points and "
    "bold the important terms.\n\n"
    "DOCUMENT CONTENT:\n{content}"
)


SOURCE_CHAT_INSTRUCTIONS = (
    "You are an expert AI tutor whose knowledge is limited to one document, "
    "titled \"{name}\". Answer the student's questions using only that content "
    "and no outside knowledge. When the answer is not in the document, reply: "
    "\"I can only answer questions based on the provided document.\"\n\n"
    "DOCUMENT CONTENT:\n{content}"
)


_OUT_OF_SCOPE = (
    "If the question is outside this subject, say that it belongs under Other "
    "Subjects, give a short answer, and suggest the Other Subjects category for "
    "a deeper dive."
)

SUBJECT_PERSONAS: dict[Subject, str] = {
    Subject.DATA_STRUCTURES: (
        "You are a tutor specialising in Data Structures & Applications. Explain "
        "clearly, include a short code example in Python or Java, point out common "
        "mistakes and finish with a small practice problem. Keep a friendly tone. "
        + _OUT_OF_SCOPE
    ),
    Subject.RESEARCH_METHODOLOGY: (
        "You are a tutor specialising in Research Methodology and Intellectual "
        "Property Rights. Explain the concept, give a real-world example, flag "
        "common misunderstandings or ethical considerations and finish with a "
        "thought-provoking question. Keep a professional, academic tone. "
        + _OUT_OF_SCOPE
    ),
    Subject.DISCRETE_MATH: (
        "You are a tutor specialising in Discrete Mathematical Structures. Explain "
        "the concept, work through a step-by-step example or proof, point out "
        "common logical or calculation pitfalls and finish with a related practice "
        "problem. Keep a clear, logical tone. " + _OUT_OF_SCOPE
    ),
    Subject.OTHER: (
        "You are BrainBridge, a friendly and knowledgeable study assistant. Help "
        "students with their studies and general questions, stay positive and "
        "supportive, and format answers with markdown where it helps."
    ),
}


QUIZ_RULES = (
    "Each question must have exactly four distinct options, and correctAnswer "
    "must be copied verbatim from the options."
)


def build_source_quiz_prompt(
    content: str, name: str, n: int, history: Sequence[str] = ()
) -> str:
    prompt = (
        f"Write a {n}-question multiple-choice quiz drawn only from the document "
        f"\"{name}\" below. Cover its key concepts with challenging but fair "
        f"options. {QUIZ_RULES}"
    )
    if history:
        prompt += (
            "\n\nIMPORTANT: do not repeat, or closely paraphrase, any of these "
            "previously asked questions.\n\nPREVIOUS QUESTIONS:\n- "
            + "\n- ".join(history)
        )
    return prompt + f"\n\nDOCUMENT CONTENT:\n{content}"


def build_source_flashcards_prompt(
    content: str, name: str, n: int, history: Sequence[str] = ()
) -> str:
    prompt = (
        f"Write {n} flashcards from the key terms and concepts of the document "
        f"\"{name}\" below. Each card has a term and a concise definition taken "
        "from the text."
    )
    if history:
        prompt += (
            "\n\nIMPORTANT: skip terms that match, or closely resemble, these "
            "previously generated terms.\n\nPREVIOUS TERMS:\n- "
            + "\n- ".join(history)
        )
    return prompt + f"\n\nDOCUMENT CONTENT:\n{content}"


def build_subject_quiz_prompt(
    subject: Subject, topic: str, difficulty: str, n: int
) -> str:
    return (
        f"Create a multiple-choice quiz for the university subject \"{subject.value}\".\n"
        f"1. Exactly {n} questions.\n"
        f"2. Only these topics: {topic}.\n"
        f"3. Difficulty \"{difficulty}\" for an undergraduate student.\n"
        f"4. {QUIZ_RULES}\n"
        "Stay within the listed topics and subject."
    )


def build_subject_flashcards_prompt(
    subject: Subject, topic: str, difficulty: str, n: int
) -> str:
    return (
        f"Create flashcards for the university subject \"{subject.value}\".\n"
        f"1. Exactly {n} flashcards.\n"
        f"2. Only these topics: {topic}.\n"
        f"3. Difficulty \"{difficulty}\" for an undergraduate student.\n"
        "4. Each card has a term (question or concept) and a short, accurate definition.\n"
        "Stay within the listed topics and subject."
    )


def build_quiz_feedback_prompt(incorrect: Sequence[UserAnswer], context: str) -> str:
    mistakes = "".join(
        f"\n{i}. Question: {a.question}\n"
        f"   - Student's Answer: {a.user_answer}\n"
        f"   - Correct Answer: {a.correct_answer}\n"
        for i, a in enumerate(incorrect, start=1)
    )
    return (
        "A student got the following quiz questions wrong. For each one explain "
        "why their answer is incorrect and why the correct answer is right. Then "
        "summarize the concepts worth reviewing, with encouraging, actionable "
        f"advice.\n\nMistakes:{mistakes}\nCONTEXT FOR THE QUIZ:\n{context}\n"
    )


ASSIGNMENT_FOCUS: dict[Subject, str] = {
    Subject.DATA_STRUCTURES: (
        "Review the code closely: time and space complexity (Big O), correctness "
        "and unhandled edge cases, coding style and choice of data structures, and "
        "possible optimizations."
    ),
    Subject.RESEARCH_METHODOLOGY: (
        "Review the academic structure: clarity of the research question, grasp of "
        "existing literature, fit of the methodology, and IPR concerns such as "
        "citation, plagiarism or data ownership."
    ),
    Subject.DISCRETE_MATH: (
        "Review the mathematics: soundness of proofs and logic, correctness of "
        "calculations and theorems, notation and clarity, and the problem-solving "
        "approach."
    ),
}

_GENERAL_FOCUS = (
    "The subject is outside the core areas, so give general feedback on clarity, "
    "structure and the main arguments."
)


def build_assignment_prompt(content: str, subject: Subject, file_name: str) -> str:
    focus = ASSIGNMENT_FOCUS.get(subject, _GENERAL_FOCUS)
    return (
        "You are an academic advisor giving encouraging, constructive feedback on "
        f"a student's assignment \"{file_name}\" for the subject \"{subject.value}\".\n\n"
        f"{focus}\n\n"
        "Answer in markdown with these sections:\n"
        "### Overall Feedback\n### Strengths\n### Areas for Improvement\n"
        "### Actionable Suggestions\n\n"
        "FILE CONTENT TO ANALYZE:\n```\n"
        f"{content}\n```\n"
    )
