"""
example.py - end-to-end walk through the form-schema engine.

Registers a small family of schemas (a base ``person`` schema, a ``profile``
schema inheriting from it), processes one submission and reports the
output and rejects.  Run with ``python example.py``.
"""
from __future__ import annotations

import json
import logging
import random

from form_schema import Registry, parse_input

# --------------------------------------------------------------------------- #
# Logging Configuration                                                       #
# --------------------------------------------------------------------------- #
logging.basicConfig(
    level="DEBUG",
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
log = logging.getLogger("form_schema.examples")

# --------------------------------------------------------------------------- #
# Hooks                                                                       #
# --------------------------------------------------------------------------- #

def random_id() -> str:
    """A nine-digit identifier starting with zero."""
    return "0" + "".join(str(random.randint(0, 9)) for _ in range(8))


def join_date(date: dict, kind: str) -> dict:
    return {f"{kind}_date": "-".join(str(date.get(k)) for k in ("year", "mon", "day"))}


def collect_pictures(matches: list) -> dict:
    return {"pictures": [m["value"] for m in matches]}

# --------------------------------------------------------------------------- #
# Schemas                                                                     #
# --------------------------------------------------------------------------- #
PERSON = {
    "name": "person",
    "params": {
        "name": {
            "required": True,
            "hash": True,
            "keys": {
                "_all": {"required": True, "min_length": 2},
                "first_name": {},
                "last_name": {},
            },
        },
        "id_num": {
            "integer": True,
            "exact_length": 9,
            "validate": lambda value: str(value).startswith("0"),
            "default": random_id,
        },
        r"/^(birth|death)_date$/": {
            "hash": True,
            "keys": {
                "_all": {"required": True, "integer": True},
                "day": {"value_between": [1, 31]},
                "mon": {"value_between": [1, 12]},
                "year": {"value_between": [1900, 2100]},
            },
            "parse": join_date,
        },
    },
}

PROFILE = {
    "name": "profile",
    "inherits_from": "person",
    "params": {
        "education": {
            "array": True,
            "length_between": [1, 3],
            "values": {
                "hash": True,
                "keys": {
                    "school": {"required": True, "min_length": 4},
                    "type": {"one_of": ["Elementary", "High School", "College/University"]},
                },
            },
        },
        r"/^picture_(\d+)$/": {"max_length": 100},
        "picture_1": {"default": "http://www.example.com/images/default.png"},
    },
    "groups": {
        "pictures": {"regex": r"/^picture_(\d+)$/", "parse": collect_pictures},
    },
}

# --------------------------------------------------------------------------- #
# Process one submission                                                      #
# --------------------------------------------------------------------------- #
registry = Registry(PERSON, PROFILE, handle_unknown="reject")

submission = parse_input(json.dumps({
    "name": {"first_name": "Some", "last_name": "O"},
    "birth_date": {"day": 32, "mon": 5, "year": 1984},
    "education": [
        {"school": "First Elementary School", "type": "Elementary"},
        {"school": "Sch", "type": "Fake"},
    ],
    "picture_2": "http://www.example.com/images/mypic.jpg",
    "nickname": "someone",
}), schema=PROFILE)

result = registry.process("profile", submission)

log.info("Output:\n%s", json.dumps(result.output, indent=2))
if result.ok:
    log.info("Submission accepted")
else:
    for path, failures in result.rejects.items():
        log.warning("%s: %s", path, failures)
