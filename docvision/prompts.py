"""Prompt builders for each structured response shape."""

from __future__ import annotations

import json
from typing import Any, Iterable

from pydantic import BaseModel

EXTRACTION_PROMPT = (
    "Extract all text, mathematical expressions, diagrams, and any written content "
    "from this exam/test document. Preserve the structure and formatting as much as "
    "possible. Include any handwritten answers, calculations, or notes."
)

_EXAM_ANALYSIS = """\
You are an expert teacher analyzing a student's exam/test submission.

EXTRACTED CONTENT:
{content}

Please analyze this student work and provide:

1. OVERALL SCORE: Give a percentage score (0-100) based on correctness
2. IDENTIFIED ERRORS: List specific mistakes found with brief explanations
3. CORRECT ANSWERS: Provide the correct solutions for any incorrect answers
4. SUBJECT CLASSIFICATION: Identify the subject area (math, physics, chemistry, language arts, etc.)

Format your response as raw JSON ONLY, without any additional text or explanations. Example format:
{{
  "score": 85,
  "subject": "Mathematics",
  "errors": [
    {{
      "location": "Question 1",
      "error": "Calculation mistake in step 2",
      "explanation": "Should be 2x + 3 = 7, not 2x + 3 = 8"
    }}
  ],
  "corrections": [
    {{
      "question": "Question 1",
      "correct_answer": "x = 2",
      "student_answer": "x = 2.5"
    }}
  ],
  "summary": "Good understanding of concepts but some calculation errors"
}}

Be constructive and educational in your feedback."""

_STATEMENT_QUESTIONS = """\
You are analyzing an exam statement document to extract individual questions.

EXTRACTED CONTENT:
{content}

Identify and extract all questions from this exam statement, including sub-parts.
For each question give its number or identifier and the complete question text.

Respond with JSON ONLY, no markdown fences and no explanations, exactly in this structure:
{{
  "questions": [
    {{"number": "1", "text": "Complete question text here"}}
  ],
  "total_questions": 5,
  "subject": "Mathematics|Physics|Chemistry|Language Arts|etc"
}}"""

_STATEMENT_ANALYSIS = """\
Analyze student exam against original questions. Return JSON ONLY:

QUESTIONS: {questions}
STUDENT WORK: {content}

Required JSON format:
{{
  "overall_score": 85,
  "subject": "Mathematics",
  "statement_used": true,
  "question_analysis": [
    {{
      "question_number": "1",
      "statement_question": "Original question text",
      "expected_answer": "Correct answer",
      "student_answer": "Student's response",
      "is_correct": true,
      "score": 100,
      "feedback": "Brief feedback"
    }}
  ],
  "summary": "Brief overall assessment",
  "recommendations": "Key improvement areas"
}}

Keep feedback concise. Mark unanswered questions as "not attempted"."""

_QUESTION_MATCHING = """\
You are analyzing a student's exam to match their answers to specific questions.

ORIGINAL QUESTIONS:
{questions}

STUDENT'S WORK:
{content}

Match each student response to the corresponding original question. For each question, identify:
1. The student's answer or attempt
2. Confidence level of the match (0-100)
3. Any partial answers or work shown

Format as JSON:
{{
  "matches": [
    {{
      "question_number": "1",
      "student_response": "What the student wrote for this question",
      "match_confidence": 95,
      "has_work_shown": true,
      "notes": "Additional observations"
    }}
  ]
}}"""

_QUIZ = """\
You are an expert educator creating a quiz from the following course material.

COURSE CONTENT:
{content}

Generate exactly {num_questions} quiz questions based on this content. Mix the question types:
- Approximately 50% should be multiple choice (4 options each)
- Approximately 50% should be true/false questions

IMPORTANT: Return ONLY valid JSON, no markdown, no explanations. Format:
{{
  "questions": [
    {{
      "id": 1,
      "type": "multiple_choice",
      "question": "Question text here?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": "Option B"
    }},
    {{
      "id": 2,
      "type": "true_false",
      "question": "Statement to evaluate?",
      "correctAnswer": "true"
    }}
  ]
}}

Guidelines:
- Questions should test understanding of key concepts
- Make questions clear and unambiguous
- For true/false, use "true" or "false" as strings
- For multiple choice, correctAnswer must exactly match one option
- Mix difficulty levels and cover different topics from the material"""


def _questions_json(questions: Iterable[Any]) -> str:
    items = [
        q.model_dump(exclude_none=True) if isinstance(q, BaseModel) else q
        for q in questions
    ]
    return json.dumps(items, indent=2, ensure_ascii=False)


def exam_analysis_prompt(content: str) -> str:
    return _EXAM_ANALYSIS.format(content=content)


def statement_questions_prompt(content: str) -> str:
    return _STATEMENT_QUESTIONS.format(content=content)


def statement_analysis_prompt(content: str, questions: Iterable[Any]) -> str:
    return _STATEMENT_ANALYSIS.format(content=content, questions=_questions_json(questions))


def question_matching_prompt(content: str, questions: Iterable[Any]) -> str:
    return _QUESTION_MATCHING.format(content=content, questions=_questions_json(questions))


def quiz_prompt(content: str, num_questions: int = 10) -> str:
    return _QUIZ.format(content=content, num_questions=num_questions)
