import unittest

import pandas as pd

from form_schema import Registry
from form_schema.batch import BatchResult, process_frame, rejects_frame
from tests._util import section_name

SCHEMA = {
    "name": "post",
    "params": {
        "subject": {"required": True, "length_between": [3, 40]},
        "section": {"required": True, "integer": True, "value_between": [1, 3],
                    "parse": section_name},
    },
}


class BatchTests(unittest.TestCase):
    def setUp(self):
        self.reg = Registry(SCHEMA)
        self.frame = pd.DataFrame(
            {"subject": ["Hello world", "su", None], "section": [1, 2, 3]},
            index=["r1", "r2", "r3"],
        )

    def test_rows_are_processed_independently(self):
        result = process_frame(self.reg, "post", self.frame)
        self.assertIsInstance(result, BatchResult)
        self.assertFalse(result.ok)
        self.assertEqual(list(result.output.index), ["r1", "r2", "r3"])
        self.assertEqual(list(result.output["section"]), ["reviews", "receips", "general"])

    def test_rejects_are_keyed_by_row(self):
        result = process_frame(self.reg, "post", self.frame)
        self.assertEqual(result.rejects, {
            "r2": {"subject": [{"rule": "length_between", "args": [3, 40]}]},
            "r3": {"subject": [{"rule": "required", "args": [True]}]},
        })

    def test_rejects_frame(self):
        flat = rejects_frame(process_frame(self.reg, "post", self.frame).rejects)
        self.assertEqual(list(flat.columns), ["row", "path", "rule", "args", "unknown"])
        self.assertEqual(list(flat["row"]), ["r2", "r3"])
        self.assertEqual(list(flat["rule"]), ["length_between", "required"])
        self.assertFalse(flat["unknown"].any())

    def test_unknown_rejects_flatten(self):
        self.reg.set_unknown_policy("reject")
        frame = pd.DataFrame({"subject": ["Hello"], "section": [1], "extra": ["x"]})
        flat = rejects_frame(process_frame(self.reg, "post", frame).rejects)
        self.assertEqual(len(flat), 1)
        self.assertEqual(flat.loc[0, "path"], "extra")
        self.assertTrue(flat.loc[0, "unknown"])

    def test_gaps_in_integer_columns_leave_other_rows_valid(self):
        reg = Registry({"name": "p", "params": {
            "section": {"integer": True, "value_between": [1, 3]},
            "subject": {},
        }})
        frame = pd.DataFrame({"subject": ["a", "b", "c"], "section": [2, None, 3]})
        self.assertEqual(frame["section"].dtype.kind, "f")

        result = process_frame(reg, "p", frame)
        self.assertEqual(result.rejects, {})
        self.assertEqual(result.output.loc[0, "section"], 2)
        self.assertTrue(pd.isna(result.output.loc[1, "section"]))

    def test_fractional_float_columns_keep_their_values(self):
        reg = Registry({"name": "r", "params": {"ratio": {"integer": True}}})
        frame = pd.DataFrame({"ratio": [1.5, None, 2.0]})
        result = process_frame(reg, "r", frame)
        self.assertEqual(result.rejects, {
            0: {"ratio": [{"rule": "integer", "args": [True]}]},
            2: {"ratio": [{"rule": "integer", "args": [True]}]},
        })
        self.assertEqual(result.output.loc[0, "ratio"], 1.5)

    def test_empty_inputs(self):
        result = process_frame(self.reg, "post", self.frame.iloc[0:0])
        self.assertTrue(result.ok)
        self.assertEqual(len(result.output), 0)
        self.assertEqual(len(rejects_frame({})), 0)

    def test_non_frame_raises(self):
        with self.assertRaises(TypeError):
            process_frame(self.reg, "post", [{"subject": "Hello"}])
