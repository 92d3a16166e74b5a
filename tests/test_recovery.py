"""Tests for docvision.recovery."""

from __future__ import annotations

import json
import unittest

from docvision.recovery import SHAPES, recover, recover_shape
from docvision.schema import (
    DEGRADED_NOTE,
    ExamAnalysis,
    QuestionMatches,
    Quiz,
    StatementAnalysis,
    StatementQuestions,
)


class TestRecoverExamples(unittest.TestCase):
    def test_plain_json_parses(self) -> None:
        record = recover('{"score": 85, "errors": []}', ExamAnalysis)
        self.assertEqual(record.status, "parsed")
        self.assertEqual(record.value.score, 85)
        self.assertEqual(record.value.errors, [])
        self.assertFalse(record.degraded)

    def test_fenced_json_parses(self) -> None:
        record = recover('```json\n{"score": 90}\n```', ExamAnalysis)
        self.assertEqual(record.status, "parsed")
        self.assertEqual(record.value.score, 90)

    def test_truncated_mid_string_degrades(self) -> None:
        raw = '{"summary": "Good work'
        record = recover(raw, ExamAnalysis)
        self.assertEqual(record.status, "degraded")
        self.assertEqual(record.value.score, 0)
        self.assertFalse(record.value.summary)
        self.assertEqual(record.value.raw_response, raw)
        self.assertEqual(record.raw_text, raw)
        self.assertTrue(record.value.parse_failed)
        self.assertEqual(record.value.note, DEGRADED_NOTE)
        self.assertIsNotNone(record.error)


class TestRecoverRepairs(unittest.TestCase):
    def test_missing_brace_repaired(self) -> None:
        record = recover('{"score": 70, "subject": "Physics"', ExamAnalysis)
        self.assertEqual(record.status, "repaired")
        self.assertEqual(record.repair, "close_brace")
        self.assertEqual(record.value.subject, "Physics")

    def test_nested_truncation_repaired(self) -> None:
        raw = '{"score": 60, "errors": [{"location": "Q1", "error": "sign"}'
        record = recover(raw, ExamAnalysis)
        self.assertEqual(record.status, "repaired")
        self.assertEqual(record.repair, "balance_brackets")
        self.assertEqual(record.value.errors[0].location, "Q1")

    def test_statement_summary_repair(self) -> None:
        raw = '{"overall_score": 75, "question_analysis": [], "summary": "Mostly correct'
        record = recover(raw, StatementAnalysis)
        self.assertEqual(record.status, "repaired")
        self.assertEqual(record.repair, "close_summary_with_recommendations")
        self.assertEqual(record.value.summary, "Mostly correct")
        self.assertTrue(record.value.recommendations)

    def test_statement_degraded_defaults(self) -> None:
        record = recover("not json at all", StatementAnalysis)
        self.assertTrue(record.degraded)
        self.assertEqual(record.value.overall_score, 0)
        self.assertEqual(record.value.subject, "Unknown")
        self.assertEqual(record.value.question_analysis, [])
        self.assertEqual(record.value.recommendations, "Please review the analysis manually")


class TestRecoverNeverRaises(unittest.TestCase):
    def test_hostile_inputs(self) -> None:
        inputs = [
            "",
            "   \n\t",
            None,
            "[1, 2, 3]",
            '"just a string"',
            '{"unexpected": true}',
            '{"score": "not a number"}',
            '{"score": 85, "errors": "oops"}',
            "[" * 5000,
            "```json\n```",
            12345,
        ]
        for model in SHAPES.values():
            for raw in inputs:
                with self.subTest(model=model.__name__, raw=str(raw)[:30]):
                    record = recover(raw, model)
                    self.assertIn(record.status, ("parsed", "repaired", "degraded"))
                    self.assertIsInstance(record.value, model)

    def test_wrong_shape_degrades(self) -> None:
        record = recover('{"unexpected": true}', ExamAnalysis)
        self.assertTrue(record.degraded)
        self.assertIn("shape mismatch", record.error)


class TestRecoverRoundTrip(unittest.TestCase):
    def test_parsed_value_equals_input(self) -> None:
        data = {
            "score": 85,
            "subject": "Mathematics",
            "errors": [{"location": "Question 1", "error": "Calculation", "explanation": "2x+3=7"}],
            "corrections": [{"question": "Question 1", "correct_answer": "x = 2", "student_answer": "x = 2.5"}],
            "summary": "Good understanding",
        }
        record = recover(json.dumps(data), ExamAnalysis)
        self.assertEqual(record.status, "parsed")
        self.assertEqual(record.value.model_dump(exclude_unset=True), data)

    def test_unknown_keys_kept(self) -> None:
        record = recover('{"score": 50, "confidence": "high"}', ExamAnalysis)
        self.assertEqual(record.value.model_dump()["confidence"], "high")


class TestShapes(unittest.TestCase):
    def test_percent_score_coerced(self) -> None:
        self.assertEqual(recover('{"score": "85%"}', ExamAnalysis).value.score, 85)

    def test_statement_questions_defaults(self) -> None:
        record = recover('{"questions": [{"number": "1", "text": "Define x"}]}', StatementQuestions)
        self.assertEqual(record.status, "parsed")
        self.assertEqual(record.value.questions[0].text, "Define x")

    def test_matches_default_empty(self) -> None:
        self.assertEqual(recover("{}", QuestionMatches).value.matches, [])

    def test_quiz_ids_and_bool_answers(self) -> None:
        raw = json.dumps({
            "questions": [
                {"type": "multiple_choice", "question": "2+2?", "options": ["3", "4"], "correctAnswer": "4"},
                {"type": "true_false", "question": "Sky is blue", "correctAnswer": True},
            ]
        })
        record = recover(raw, Quiz)
        self.assertEqual(record.status, "parsed")
        self.assertEqual([q.id for q in record.value.questions], [1, 2])
        self.assertEqual(record.value.questions[1].correct_answer, "true")

    def test_quiz_requires_questions(self) -> None:
        self.assertTrue(recover("{}", Quiz).degraded)

    def test_quiz_multiple_choice_needs_options(self) -> None:
        raw = '{"questions": [{"type": "multiple_choice", "question": "?", "correctAnswer": "a"}]}'
        self.assertTrue(recover(raw, Quiz).degraded)

    def test_recover_shape_lookup(self) -> None:
        self.assertEqual(recover_shape('{"score": 1}', "exam").value.score, 1)
        with self.assertRaises(ValueError):
            recover_shape("{}", "essay")


if __name__ == "__main__":
    unittest.main()
