from dataclasses import FrozenInstanceError

import pytest

from protoc_render.case import Case
from protoc_render.config import RendererConfig
from protoc_render.context.builder import ContextBuilder, MapEntry
from protoc_render.context.proto_type import ProtoType, ProtoTypeKind
from protoc_render.errors import MissingRequiredField, MissingTypeMapping
from protoc_render.options import FIELD_KEY_VALUE, NATIVE_TYPE

from proto_factory import FieldProto, make_field, set_extension_values

MAP_TYPE_NAME = ".MapType"


def _build(field, package=None, map_lookup=None, config=None):
    return ContextBuilder(config or RendererConfig()).build_field(field, package, map_lookup)


class TestFieldName:
    def test_name(self):
        assert _build(make_field("test_name")).field_name == "test_name"

    def test_name_property(self):
        assert _build(make_field("test_name")).name == "test_name"

    def test_case_change(self):
        config = RendererConfig()
        config.case_config.field_name = Case.UPPER_SNAKE
        assert _build(make_field("testName"), config=config).field_name == "TEST_NAME"

    def test_override_keyed_by_cased_name(self):
        config = RendererConfig(field_name_override={"type_name": "kind"})
        assert _build(make_field("typeName"), config=config).field_name == "kind"

    def test_missing_name(self):
        with pytest.raises(MissingRequiredField, match="Field '\\(unknown\\)' has no 'name'"):
            _build(make_field(None))


class TestFieldType:
    def test_primitive_uses_type_config(self):
        config = RendererConfig()
        config.type_config["float"] = "TestFloat"
        context = _build(make_field("f", FieldProto.TYPE_FLOAT), ".test.package", config=config)
        assert context.fully_qualified_type == "TestFloat"
        assert context.relative_type == "TestFloat"

    def test_every_primitive_has_a_default(self):
        for type_id in (
            FieldProto.TYPE_DOUBLE, FieldProto.TYPE_INT64, FieldProto.TYPE_UINT32,
            FieldProto.TYPE_SFIXED32, FieldProto.TYPE_SFIXED64, FieldProto.TYPE_BYTES,
        ):
            assert _build(make_field("f", type_id)).fully_qualified_type

    def test_missing_type_mapping(self):
        config = RendererConfig()
        del config.type_config["float"]
        with pytest.raises(MissingTypeMapping, match="float"):
            _build(make_field("f", FieldProto.TYPE_FLOAT), config=config)

    def test_missing_type(self):
        with pytest.raises(MissingRequiredField, match="Field 'field_name' has no 'type'"):
            _build(make_field("field_name", type_id=None))

    def test_package_separator_replaced(self):
        config = RendererConfig(package_separator="::")
        context = _build(make_field("test", type_name=".root.sub.TypeName"), "root", config=config)
        assert context.relative_type == "sub::TypeName"
        assert context.fully_qualified_type == "root::sub::TypeName"

    def test_type_name_case(self):
        config = RendererConfig()
        config.case_config.message_name = Case.UPPER_SNAKE
        context = _build(make_field("field_name", type_name="TypeName"), config=config)
        assert context.fully_qualified_type == "TYPE_NAME"

    def test_type_name_case_ignored_for_primitives(self):
        config = RendererConfig()
        config.case_config.message_name = Case.UPPER_SNAKE
        context = _build(make_field("field_name", FieldProto.TYPE_FLOAT), config=config)
        assert context.fully_qualified_type == "float"

    def test_relative_to_file_package(self):
        context = _build(make_field("f", type_name=".test.package.inner.TypeName"), "test.package")
        assert context.relative_type == "inner.TypeName"

    def test_ascend_token(self):
        config = RendererConfig(field_relative_parent_prefix="super")
        context = _build(make_field("f", type_name=".grand.Name"), "grand.parent.me", config=config)
        assert context.relative_type == "super.super.Name"

    def test_type_config_replaces_named_type(self):
        config = RendererConfig()
        config.type_config["root.Id"] = "other.MyId"
        context = _build(make_field("f", type_name=".root.Id"), config=config)
        assert context.fully_qualified_type == "other.MyId"


class TestNativeType:
    def test_overrides_type(self):
        field = make_field("f", FieldProto.TYPE_INT32)
        set_extension_values(field.options, NATIVE_TYPE, ["custom_type"])
        context = _build(field, "root")
        assert context.relative_type == "custom_type"
        assert context.fully_qualified_type == "custom_type"

    def test_skips_case_and_separator(self):
        config = RendererConfig(package_separator="::")
        config.case_config.message_name = Case.UPPER_SNAKE
        field = make_field("f", type_name=".root.Message")
        set_extension_values(field.options, NATIVE_TYPE, ["std.myType"])
        context = _build(field, config=config)
        assert context.fully_qualified_type == "std.myType"

    def test_not_made_relative_with_ascend_token(self):
        config = RendererConfig(field_relative_parent_prefix="super")
        field = make_field("f", FieldProto.TYPE_INT32)
        set_extension_values(field.options, NATIVE_TYPE, ["std.MyType"])
        context = _build(field, "root.sub", config=config)
        assert context.fully_qualified_type == "std.MyType"
        assert context.relative_type == "std.MyType"

    def test_not_made_relative_to_matching_package(self):
        field = make_field("f", FieldProto.TYPE_INT32)
        set_extension_values(field.options, NATIVE_TYPE, ["std.MyType"])
        context = _build(field, "std")
        assert context.fully_qualified_type == "std.MyType"
        assert context.relative_type == "std.MyType"

    def test_map_value_written_verbatim(self):
        lookup = {
            MAP_TYPE_NAME: MapEntry(
                key=ProtoType(ProtoTypeKind.PRIMITIVE, FieldProto.TYPE_STRING),
                value=ProtoType(ProtoTypeKind.NATIVE_OVERRIDE, "std.MyType"),
            ),
        }
        config = RendererConfig(field_relative_parent_prefix="super")
        context = _build(make_field("f", type_name=MAP_TYPE_NAME), "std.sub", lookup, config)
        assert context.fully_qualified_value_type == "std.MyType"
        assert context.relative_value_type == "std.MyType"

    def test_priority(self):
        field = make_field("f", type_name=".root.Message")
        set_extension_values(field.options, NATIVE_TYPE, ["Native"])
        proto_type = ProtoType.from_field(field, ContextBuilder(RendererConfig()).registry)
        assert proto_type.kind is ProtoTypeKind.NATIVE_OVERRIDE
        assert ProtoType.from_field(field).kind is ProtoTypeKind.NAMED


class TestFlags:
    def test_array(self):
        assert _build(make_field("f", repeated=True)).is_array

    def test_not_array(self):
        assert not _build(make_field("f")).is_array

    def test_oneof(self):
        assert _build(make_field("f", oneof_index=0)).is_oneof

    def test_proto3_optional_is_oneof(self):
        # Synthetic oneof members still carry an oneof_index.
        field = make_field("f", oneof_index=0)
        field.proto3_optional = True
        assert _build(field).is_oneof

    def test_no_oneof_index(self):
        assert not _build(make_field("f")).is_oneof


class TestOptions:
    def test_key_values(self):
        field = make_field("f")
        set_extension_values(field.options, FIELD_KEY_VALUE, ["key0=value0", "key1=value1"])
        context = _build(field)
        assert context.options["key0"] == "value0"
        assert context.options["key1"] == "value1"

    def test_builtin(self):
        field = make_field("f")
        field.options.deprecated = True
        assert _build(field).options == {"deprecated": True}


class TestMap:
    def test_complex_value(self):
        lookup = {
            MAP_TYPE_NAME: MapEntry(
                key=ProtoType(ProtoTypeKind.PRIMITIVE, FieldProto.TYPE_INT32),
                value=ProtoType(ProtoTypeKind.NAMED, ".root.sub.inner.TypeName"),
            ),
        }
        context = _build(make_field("f", type_name=MAP_TYPE_NAME), ".root.sub", lookup)
        assert context.is_map
        assert context.fully_qualified_key_type == "int32"
        assert context.fully_qualified_value_type == "root.sub.inner.TypeName"
        assert context.relative_key_type == "int32"
        assert context.relative_value_type == "inner.TypeName"
        assert context.fully_qualified_type is None
        assert context.relative_type is None
        assert not context.is_array

    def test_primitive_key_value(self):
        lookup = {
            MAP_TYPE_NAME: MapEntry(
                key=ProtoType(ProtoTypeKind.PRIMITIVE, FieldProto.TYPE_INT32),
                value=ProtoType(ProtoTypeKind.PRIMITIVE, FieldProto.TYPE_FLOAT),
            ),
        }
        context = _build(make_field("f", type_name=MAP_TYPE_NAME), None, lookup)
        assert context.is_map
        assert context.fully_qualified_key_type == "int32"
        assert context.fully_qualified_value_type == "float"

    def test_non_map_has_no_map_fields(self):
        context = _build(make_field("f"))
        assert not context.is_map
        assert context.fully_qualified_key_type is None
        assert context.fully_qualified_value_type is None
        assert context.relative_key_type is None
        assert context.relative_value_type is None


class TestFrozen:
    def test_cannot_mutate(self):
        context = _build(make_field("f"))
        with pytest.raises(FrozenInstanceError):
            context.field_name = "other"
