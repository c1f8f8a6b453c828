"""Tests for the deserialization adapter."""

from __future__ import annotations

import json
from dataclasses import dataclass

import pytest
from pydantic import BaseModel

from bifrost.deserialize import Deserializer, identity, unwrap_field
from bifrost.exceptions import DeserializationError
from bifrost.exit_codes import EXIT_DESERIALIZATION_ERROR


@dataclass
class Model:
    name: str
    age: int = 0

    @classmethod
    def from_json(cls, data) -> Model:
        return cls(name=data["name"], age=data.get("age", 0))


class User(BaseModel):
    id: int
    name: str


class TestDecode:
    def test_valid_json(self) -> None:
        assert Deserializer().decode('{"a": [1, 2]}') == {"a": [1, 2]}

    def test_invalid_json(self) -> None:
        with pytest.raises(DeserializationError) as exc_info:
            Deserializer().decode("<html>")
        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)

    def test_empty_body(self) -> None:
        with pytest.raises(DeserializationError):
            Deserializer().decode("")


class TestToOne:
    def test_converts_mapping(self) -> None:
        assert Deserializer().to_one({"name": "Ada", "age": 36}, Model.from_json) == Model("Ada", 36)

    def test_pydantic_converter(self) -> None:
        user = Deserializer().to_one({"id": 1, "name": "Ada"}, User.model_validate)
        assert user == User(id=1, name="Ada")

    def test_list_is_rejected(self) -> None:
        with pytest.raises(DeserializationError, match="Expected an object"):
            Deserializer().to_one([{"name": "Ada"}], Model.from_json)

    def test_converter_error_is_wrapped(self) -> None:
        with pytest.raises(DeserializationError) as exc_info:
            Deserializer().to_one({"age": 3}, Model.from_json)
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_validation_error_is_wrapped(self) -> None:
        with pytest.raises(DeserializationError, match="Converter failed"):
            Deserializer().to_one({"id": "x", "name": "Ada"}, User.model_validate)


class TestToMany:
    def test_keeps_order(self) -> None:
        decoded = [{"name": "c"}, {"name": "a"}, {"name": "b"}]
        result = Deserializer().to_many(decoded, Model.from_json)
        assert [m.name for m in result] == ["c", "a", "b"]

    def test_empty_list(self) -> None:
        assert Deserializer().to_many([], Model.from_json) == []

    def test_object_is_rejected(self) -> None:
        with pytest.raises(DeserializationError, match="Expected a list"):
            Deserializer().to_many({"name": "a"}, Model.from_json)

    def test_non_mapping_element(self) -> None:
        with pytest.raises(DeserializationError, match="index 1"):
            Deserializer().to_many([{"name": "a"}, 2], Model.from_json)


class TestUnwrap:
    def test_identity_default(self) -> None:
        assert identity({"a": 1}) == {"a": 1}

    def test_unwrap_field(self) -> None:
        deserializer = Deserializer(unwrap=unwrap_field("data"))
        decoded = {"data": [{"name": "a"}], "meta": {"page": 1}}
        assert deserializer.to_many(decoded, Model.from_json) == [Model("a")]

    def test_missing_field(self) -> None:
        deserializer = Deserializer(unwrap=unwrap_field("data"))
        with pytest.raises(DeserializationError, match="Could not unwrap"):
            deserializer.to_one({"result": {}}, Model.from_json)

    def test_unwrap_of_non_mapping(self) -> None:
        deserializer = Deserializer(unwrap=unwrap_field("data"))
        with pytest.raises(DeserializationError) as exc_info:
            deserializer.to_one([1], Model.from_json)
        assert isinstance(exc_info.value.__cause__, TypeError)


class TestDeserializationError:
    def test_str_and_exit_code(self) -> None:
        err = DeserializationError("bad payload")
        assert str(err) == "DeserializationError: bad payload"
        assert err.message == "bad payload"
        assert err.exit_code == EXIT_DESERIALIZATION_ERROR
