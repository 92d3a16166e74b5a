"""Tests for docvision.response_cleaner."""

from __future__ import annotations

import json
import unittest

from docvision.response_cleaner import (
    DEFAULT_REPAIRS,
    RECOMMENDATIONS_FILLER,
    STATEMENT_REPAIRS,
    balance_brackets,
    clean,
    close_array,
    close_brace,
    close_summary_with_recommendations,
    looks_truncated,
    repair_candidates,
    strip_fences,
)


class TestStripFences(unittest.TestCase):
    def test_json_fence(self) -> None:
        self.assertEqual(strip_fences('```json\n{"score": 90}\n```'), '{"score": 90}')

    def test_bare_fence_and_whitespace(self) -> None:
        self.assertEqual(strip_fences('  ```\n[1, 2]\n```  '), "[1, 2]")

    def test_unterminated_fence(self) -> None:
        self.assertEqual(strip_fences('```json\n{"a": 1'), '{"a": 1')

    def test_none_and_plain(self) -> None:
        self.assertEqual(strip_fences(None), "")
        self.assertEqual(strip_fences(' {"a": 1} '), '{"a": 1}')


class TestLooksTruncated(unittest.TestCase):
    def test_object_and_array(self) -> None:
        self.assertFalse(looks_truncated('{"a": 1}'))
        self.assertTrue(looks_truncated('{"a": 1'))
        self.assertFalse(looks_truncated("[1, 2]"))
        self.assertTrue(looks_truncated("[1, 2"))

    def test_empty_is_not_truncated(self) -> None:
        self.assertFalse(looks_truncated("   "))

    def test_explicit_closers(self) -> None:
        self.assertFalse(looks_truncated("done.", closers=(".",)))

    def test_closer_follows_opening_character(self) -> None:
        self.assertTrue(looks_truncated('{"a": [1]'))
        self.assertTrue(looks_truncated('[{"a": 1}'))


class TestRepairs(unittest.TestCase):
    def test_close_brace(self) -> None:
        self.assertEqual(json.loads(close_brace('{"score": 85')), {"score": 85})
        self.assertIsNone(close_brace('{"score": 85}'))
        self.assertIsNone(close_brace("[1"))

    def test_close_array(self) -> None:
        self.assertEqual(json.loads(close_array("[1, 2,")), [1, 2])
        self.assertIsNone(close_array('{"a": 1'))

    def test_summary_with_recommendations(self) -> None:
        repaired = close_summary_with_recommendations('{"overall_score": 70, "summary": "Solid work')
        data = json.loads(repaired)
        self.assertEqual(data["summary"], "Solid work")
        self.assertEqual(data["recommendations"], RECOMMENDATIONS_FILLER)
        self.assertIsNone(close_summary_with_recommendations('{"summary": "x", "recommendations": "y'))

    def test_balance_brackets_nested(self) -> None:
        repaired = balance_brackets('{"errors": [{"location": "Q1"}, {"location": "Q2"}')
        self.assertEqual(len(json.loads(repaired)["errors"]), 2)

    def test_balance_brackets_ignores_brackets_in_strings(self) -> None:
        repaired = balance_brackets('{"note": "use [x] or {y}", "list": [1')
        self.assertEqual(json.loads(repaired)["list"], [1])

    def test_balance_brackets_inside_string_does_not_apply(self) -> None:
        self.assertIsNone(balance_brackets('{"summary": "Good work'))

    def test_broken_plugin_skipped(self) -> None:
        def explode(text: str) -> str:
            raise RuntimeError("bad repair")

        names = [name for name, _ in repair_candidates('{"a": 1', (explode, close_brace))]
        self.assertEqual(names, ["close_brace"])

    def test_statement_repairs_order(self) -> None:
        self.assertIs(STATEMENT_REPAIRS[0], close_summary_with_recommendations)

    def test_default_repairs(self) -> None:
        self.assertEqual(DEFAULT_REPAIRS, (close_brace, close_array, balance_brackets))
        self.assertEqual(STATEMENT_REPAIRS[1:], DEFAULT_REPAIRS)


class TestClean(unittest.TestCase):
    def test_fenced_and_truncated(self) -> None:
        self.assertEqual(json.loads(clean('```json\n{"score": 85\n```')), {"score": 85})

    def test_idempotent(self) -> None:
        samples = [
            '{"score": 85, "errors": []}',
            '{"score": 85',
            "[1, 2",
            '{"summary": "Good work',
            '{"a": [1, {"b": 2',
            "plain prose answer",
            "",
            "   ",
        ]
        for sample in samples:
            with self.subTest(sample=sample):
                once = clean(sample)
                self.assertEqual(clean(once), once)

    def test_never_raises(self) -> None:
        for sample in (None, 42, "```", "}}}", "[[[", '"'):
            clean(sample)


if __name__ == "__main__":
    unittest.main()
