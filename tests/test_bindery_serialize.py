import json
import pytest
from dataclasses import dataclass
from decimal import Decimal

from bindery.bindery_datatypes import Model, Sequence
from bindery.bindery_serialize import serialize, deserialize, detect_format, parse_scalar


def test_json_is_sniffed_and_built_into_models():
    out = deserialize('{"a": {"b": [10, 20, 30]}}')
    assert isinstance(out, Model)
    assert isinstance(out["a"]["b"], Sequence)
    assert out == {"a": {"b": [10, 20, 30]}}

def test_yaml_is_the_default():
    out = deserialize("a: 1\nb: [x, y]\n")
    assert out == {"a": 1, "b": ["x", "y"]}
    assert isinstance(out, Model)

def test_yaml_with_json_fmt_fallback():
    # YAML payload declared as JSON still loads via the YAML fallback
    out = deserialize("a: 1\nb: [x, y]\n", fmt="json")
    assert out == {"a": 1, "b": ["x", "y"]}

def test_bytes_input():
    assert deserialize(b'[1, 2]') == [1, 2]

def test_invalid_text_raises_value_error():
    with pytest.raises(ValueError):
        deserialize("a: [1, 2", fmt="yaml")

def test_unsupported_format():
    with pytest.raises(ValueError):
        deserialize("x", fmt="toml")
    with pytest.raises(ValueError):
        serialize({}, fmt="toml")

@pytest.mark.parametrize("hint, filename, expected", [
    ('{"a": 1}', None, "json"),
    ("  [1]", None, "json"),
    ("a: 1", None, "yaml"),
    ("a: 1", "model.json", "json"),
    ("{}", "model.yml", "yaml"),
    (None, "MODEL.YAML", "yaml"),
    (None, None, "yaml"),
])
def test_detect_format(hint, filename, expected):
    assert detect_format(hint, filename) == expected

def test_json_serialize_of_models():
    value = Model({"a": Sequence([1, Decimal("1.5")]), "b": None})
    assert json.loads(serialize(value, "json")) == {"a": [1, 1.5], "b": None}

def test_yaml_serialize_keeps_key_order():
    text = serialize(Model({"z": 1, "a": 2}), fmt="yaml")
    assert text.index("z:") < text.index("a:")
    assert deserialize(text) == {"z": 1, "a": 2}

def test_serialize_reflects_objects():
    @dataclass
    class Point:
        x: int
        y: int

    text = serialize({"p": Point(1, 2)}, "json", pretty=False)
    assert json.loads(text) == {"p": {"x": 1, "y": 2}}

def test_serialize_rejects_cycles():
    class Loop:
        def __init__(self):
            self.me = self

    with pytest.raises(ValueError, match="cyclic"):
        serialize(Loop())

def test_serialize_allows_shared_references():
    shared = Model({"v": 1})
    text = serialize(Model({"a": shared, "b": shared}), "json", pretty=False)
    assert json.loads(text) == {"a": {"v": 1}, "b": {"v": 1}}

@pytest.mark.parametrize("text, expected", [
    ("42", 42),
    ("true", True),
    ("hello", "hello"),
    ("[1, 2]", [1, 2]),
    ("{a: 1}", {"a": 1}),
    ("", None),
    ("[unclosed", "[unclosed"),
])
def test_parse_scalar(text, expected):
    assert parse_scalar(text) == expected
