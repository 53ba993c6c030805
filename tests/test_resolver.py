import unittest

from form_schema import resolver
from form_schema.errors import CyclicInheritance, UnknownSchema
from form_schema.rules import RuleBuilder, Schema
from form_schema.utils import deep_merge
from form_schema.validations import ValidatorRegistry
from tests._util import EDIT_POST, POST


def schemas(*definitions):
    return {d["name"]: Schema.from_definition(d) for d in definitions}


class ResolveTests(unittest.TestCase):
    def test_child_overrides_individual_rules(self):
        merged, lineage = resolver.resolve("edit_post", schemas(POST, EDIT_POST))
        self.assertEqual(lineage, ("post", "edit_post"))
        self.assertEqual(merged.params["subject"], {"required": False, "length_between": [3, 40]})
        self.assertEqual(
            merged.params["id"],
            {"required": True, "exact_length": 10,
             "value_between": [1000000000, 2000000000], "forbidden": True},
        )

    def test_unmentioned_fields_pass_through(self):
        merged, _ = resolver.resolve("edit_post", schemas(POST, EDIT_POST))
        for name in ("text", "day", "mon", "year", "section"):
            self.assertEqual(merged.params[name], POST["params"][name])
        self.assertEqual(merged.groups, POST["groups"])
        self.assertTrue(merged.ignore_missing)

    def test_later_parents_override_earlier_ones(self):
        defs = schemas(
            {"name": "a", "ignore_missing": True, "params": {"f": {"min_length": 1, "max_length": 5}}},
            {"name": "b", "params": {"f": {"min_length": 2}, "g": {}}},
            {"name": "c", "inherits_from": ["a", "b"], "ignore_missing": False,
             "params": {"f": {"max_length": 9}}},
        )
        merged, lineage = resolver.resolve("c", defs)
        self.assertEqual(lineage, ("a", "b", "c"))
        self.assertEqual(merged.params["f"], {"min_length": 2, "max_length": 9})
        self.assertIn("g", merged.params)
        self.assertFalse(merged.ignore_missing)

    def test_three_level_chain_matches_pairwise_merging(self):
        a = {"name": "a", "params": {"h": {"hash": True, "keys": {"x": {"min_length": 1}}}}}
        b = {"name": "b", "inherits_from": "a",
             "params": {"h": {"keys": {"x": {"max_length": 4}, "y": {}}}}}
        c = {"name": "c", "inherits_from": "b",
             "params": {"h": {"required": True, "keys": {"x": {"min_length": 2}}}}}
        merged, lineage = resolver.resolve("c", schemas(a, b, c))
        self.assertEqual(lineage, ("a", "b", "c"))
        expected = deep_merge(deep_merge(a["params"], b["params"]), c["params"])
        self.assertEqual(merged.params, expected)
        self.assertEqual(merged.params["h"]["keys"]["x"], {"min_length": 2, "max_length": 4})

    def test_diamond_is_not_a_cycle(self):
        defs = schemas(
            {"name": "base", "params": {"f": {"min_length": 1}}},
            {"name": "left", "inherits_from": "base"},
            {"name": "right", "inherits_from": "base", "params": {"f": {"min_length": 3}}},
            {"name": "leaf", "inherits_from": ["left", "right"]},
        )
        merged, lineage = resolver.resolve("leaf", defs)
        self.assertEqual(lineage, ("base", "left", "right", "leaf"))
        self.assertEqual(merged.params["f"], {"min_length": 3})

    def test_groups_and_postprocess_are_replaced(self):
        first, second = (lambda out: out), (lambda out: None)
        defs = schemas(
            {"name": "a", "groups": {"g": {"params": ["x"], "parse": dict}}, "postprocess": first},
            {"name": "b", "inherits_from": "a",
             "groups": {"g": {"regex": "/x/", "parse": dict}}, "postprocess": second},
        )
        merged, _ = resolver.resolve("b", defs)
        self.assertEqual(merged.groups["g"], {"regex": "/x/", "parse": dict})
        self.assertIs(merged.postprocess, second)

    def test_cycles_are_detected(self):
        defs = schemas(
            {"name": "a", "inherits_from": "b"},
            {"name": "b", "inherits_from": "a"},
            {"name": "self", "inherits_from": "self"},
        )
        with self.assertRaises(CyclicInheritance) as ctx:
            resolver.resolve("a", defs)
        self.assertEqual(ctx.exception.name, "a")
        self.assertEqual(ctx.exception.chain, ("a", "b"))
        with self.assertRaises(CyclicInheritance):
            resolver.resolve("self", defs)

    def test_unknown_schema_and_ancestor(self):
        defs = schemas({"name": "orphan", "inherits_from": "missing"})
        with self.assertRaises(UnknownSchema) as ctx:
            resolver.resolve("orphan", defs)
        self.assertEqual(ctx.exception.name, "missing")
        with self.assertRaises(UnknownSchema):
            resolver.resolve("nothing", defs)


class CompileTests(unittest.TestCase):
    def test_compile_is_deterministic(self):
        defs = schemas(POST, EDIT_POST)
        builder = RuleBuilder(ValidatorRegistry())
        first = resolver.compile("edit_post", defs, builder)
        second = resolver.compile("edit_post", defs, builder)
        self.assertIsNot(first, second)
        self.assertEqual(first, second)

    def test_compiled_tree_shape(self):
        tree = resolver.compile("edit_post", schemas(POST, EDIT_POST), RuleBuilder(ValidatorRegistry()))
        self.assertEqual(tree.name, "edit_post")
        self.assertTrue(tree.ignore_missing)
        self.assertEqual([g.name for g in tree.groups], ["date"])
        subject = tree.params.literals["subject"]
        self.assertFalse(subject.required)
        self.assertEqual([(r.name, r.args) for r in subject.rules],
                         [("required", (False,)), ("length_between", (3, 40))])
        self.assertTrue(tree.params.literals["id"].forbidden)
