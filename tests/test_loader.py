import json
import tempfile
import unittest
from pathlib import Path

from form_schema import loader
from form_schema.errors import MalformedRule
from tests._util import join_date, section_name, starts_with_lorem, tmp_json

HOOKS = {
    "section_name": section_name,
    "join_date": join_date,
    "starts_with_lorem": starts_with_lorem,
    "today": lambda: "2010-12-13",
}

POST_JSON = {
    "name": "post",
    "ignore_missing": True,
    "params": {
        "subject": {"required": True, "length_between": [3, 40]},
        "text": {"required": True, "validate": "@starts_with_lorem"},
        "section": {"required": True, "integer": True, "parse": "section_name"},
        "posted": {"default": "@today"},
        "status": {"default": "draft"},
        "tags": {"array": True, "values": {"preprocess": "strip"}},
        "meta": {"hash": True, "keys": {"lang": {"parse": "lang"}}},
    },
    "groups": {"date": {"params": ["year", "mon", "day"], "parse": "@join_date"}},
}


class LoaderTests(unittest.TestCase):
    def setUp(self):
        self.hooks = {**HOOKS, "strip": str.strip, "lang": lambda v: {"lang": v.lower()}}

    def test_load_schema_binds_hooks(self):
        path = tmp_json(POST_JSON)
        try:
            definition = loader.load_schema(path, hooks=self.hooks)
        finally:
            path.unlink(missing_ok=True)

        params = definition["params"]
        self.assertIs(params["text"]["validate"], starts_with_lorem)
        self.assertIs(params["section"]["parse"], section_name)
        self.assertIs(params["posted"]["default"], HOOKS["today"])
        self.assertEqual(params["status"]["default"], "draft")
        self.assertIs(params["tags"]["values"]["preprocess"], str.strip)
        self.assertTrue(callable(params["meta"]["keys"]["lang"]["parse"]))
        self.assertIs(definition["groups"]["date"]["parse"], join_date)

    def test_loaded_definition_processes(self):
        with tempfile.TemporaryDirectory() as td:
            tmp_json(POST_JSON, td, "post.json")
            tmp_json({"inherits_from": "post", "params": {"subject": {"required": False}}},
                     td, "edit_post.json")
            reg = loader.load_registry(td, hooks=self.hooks, handle_unknown="remove")

        self.assertIn("edit_post", reg)
        result = reg.process("edit_post", {
            "text": "lorem ipsum", "section": 2, "tags": [" a "], "meta": {"lang": "EN"}, "junk": 1,
        })
        self.assertTrue(result.ok)
        self.assertEqual(result.output, {
            "text": "lorem ipsum",
            "section": "receips",
            "tags": ["a"],
            "meta": {"lang": "en"},
            "posted": "2010-12-13",
            "status": "draft",
        })

    def test_load_schemas_in_file_order(self):
        with tempfile.TemporaryDirectory() as td:
            tmp_json({"name": "zeta"}, td, "b.json")
            tmp_json({"name": "alpha"}, td, "a.json")
            names = [d["name"] for d in loader.load_schemas(td)]
        self.assertEqual(names, ["alpha", "zeta"])

    def test_missing_hook_is_malformed(self):
        path = tmp_json({"name": "s", "params": {"a": {"parse": "@nowhere"}}})
        try:
            with self.assertRaises(MalformedRule) as ctx:
                loader.load_schema(path)
            self.assertIn("s.params.a.parse", str(ctx.exception))
        finally:
            path.unlink(missing_ok=True)

    def test_load_schema_not_found(self):
        with self.assertRaises(FileNotFoundError):
            loader.load_schema("does_not_exist.json")
        with self.assertRaises(FileNotFoundError):
            loader.load_schemas("no_such_directory")

    def test_invalid_json_raises_value_error(self):
        with tempfile.NamedTemporaryFile("w+", delete=False) as tmp:
            tmp.write("{not json")  # malformed
            tmp.flush()
            p = Path(tmp.name)

        try:
            with self.assertRaises(ValueError):
                loader.load_schema(p)
        finally:
            p.unlink(missing_ok=True)

    def test_non_object_json_raises_value_error(self):
        path = tmp_json([1, 2, 3])
        try:
            with self.assertRaises(ValueError):
                loader.load_schema(path)
        finally:
            path.unlink(missing_ok=True)

    def test_empty_file_raises_value_error(self):
        with tempfile.NamedTemporaryFile("w+", delete=False) as tmp:
            p = Path(tmp.name) # File is created but empty

        try:
            with self.assertRaises(ValueError):
                loader.load_schema(p)
        finally:
            p.unlink(missing_ok=True)

    def test_file_is_not_modified(self):
        path = tmp_json(POST_JSON)
        try:
            loader.load_schema(path, hooks=self.hooks)
            self.assertEqual(json.loads(path.read_text(encoding="utf-8")), POST_JSON)
        finally:
            path.unlink(missing_ok=True)
