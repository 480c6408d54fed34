import os
import re
import sys
import unittest
from collections import namedtuple

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from tools import (
    MathTools,
    format_kg,
    format_number,
    now_iso,
    parse_number_or_null,
    sort_by_name,
    today_iso_date,
    uid,
)


class MathToolsTestCase(unittest.TestCase):
    def test_clamp(self) -> None:
        self.assertEqual(MathTools.clamp(5, 0, 10), 5)
        self.assertEqual(MathTools.clamp(-1, 0, 10), 0)
        self.assertEqual(MathTools.clamp(11, 0, 10), 10)
        with self.assertRaises(ValueError):
            MathTools.clamp(1, 2, 1)

    def test_clamp_int(self) -> None:
        self.assertEqual(MathTools.clamp_int(0, 1, 20), 1)
        self.assertEqual(MathTools.clamp_int(25, 1, 20), 20)
        self.assertEqual(MathTools.clamp_int(2.5, 1, 20), 3)
        self.assertEqual(MathTools.clamp_int(4.4, 1, 20), 4)
        self.assertEqual(MathTools.clamp_int(float("nan"), 1, 20), 1)


class InputParsingTestCase(unittest.TestCase):
    def test_parse_number_or_null(self) -> None:
        self.assertIsNone(parse_number_or_null(""))
        self.assertIsNone(parse_number_or_null("   "))
        self.assertIsNone(parse_number_or_null(None))
        self.assertIsNone(parse_number_or_null("abc"))
        self.assertIsNone(parse_number_or_null("inf"))
        self.assertEqual(parse_number_or_null("8"), 8)
        self.assertIsInstance(parse_number_or_null("8"), int)
        self.assertEqual(parse_number_or_null(" 62.5 "), 62.5)
        self.assertEqual(parse_number_or_null("62,5"), 62.5)

    def test_format_kg(self) -> None:
        self.assertEqual(format_kg(None), "")
        self.assertEqual(format_kg(100), "100")
        self.assertEqual(format_kg(100.0), "100")
        self.assertEqual(format_kg(62.5), "62.5")
        self.assertEqual(format_kg(62.25), "62.25")
        self.assertEqual(format_kg(1.005), "1")

    def test_format_number(self) -> None:
        self.assertEqual(format_number(None), "")
        self.assertEqual(format_number(500.0), "500")
        self.assertEqual(format_number(5), "5")
        self.assertEqual(format_number(62.5), "62.5")


class MiscToolsTestCase(unittest.TestCase):
    def test_now_iso_format(self) -> None:
        self.assertRegex(now_iso(), r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")

    def test_today_iso_date(self) -> None:
        self.assertTrue(re.match(r"^\d{4}-\d{2}-\d{2}$", today_iso_date()))

    def test_uid_unique(self) -> None:
        self.assertNotEqual(uid(), uid())

    def test_sort_by_name(self) -> None:
        Item = namedtuple("Item", "name")
        items = [Item("squat"), Item("Bench"), Item("deadlift")]
        self.assertEqual([i.name for i in sort_by_name(items)], ["Bench", "deadlift", "squat"])


if __name__ == "__main__":
    unittest.main()
