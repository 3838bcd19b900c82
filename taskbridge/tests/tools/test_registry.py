"""Tests for the tool registry and descriptor checks."""

import json
import threading

import pytest

from taskbridge.core.errors.errors import ConfigurationError
from taskbridge.tools.models import FromInput, Static, ToolDescriptor
from taskbridge.tools.registry import ToolRegistry, check_descriptor, load_tool_configs, parse_descriptor
from taskbridge.core.settings import DEFAULT_TOOLS_CONFIG


class TestParseDescriptor:
    """Test structural parsing of raw tool configs."""

    def test_parses_camel_case_config(self, upscaler_config):
        descriptor = parse_descriptor(upscaler_config)

        assert descriptor.name == "image_upscaler"
        assert descriptor.api_endpoint == "/api/image-upscaler"
        assert descriptor.default_values == {"scale": 2}
        assert descriptor.is_required("imageUrl")
        assert not descriptor.is_required("scale")

    def test_returns_descriptor_unchanged(self, remove_bg_descriptor):
        assert parse_descriptor(remove_bg_descriptor) is remove_bg_descriptor

    @pytest.mark.parametrize("field", ["name", "description", "apiEndpoint", "inputSchema", "fieldValidation"])
    def test_missing_required_field(self, remove_bg_config, field):
        del remove_bg_config[field]

        with pytest.raises(ConfigurationError) as exc_info:
            parse_descriptor(remove_bg_config)

        assert exc_info.value.message == f"Tool config missing required field: {field}"

    def test_unsupported_validation_type(self, remove_bg_config):
        remove_bg_config["fieldValidation"]["imageUrl"] = {"type": "boolean", "errorMessage": "nope"}

        with pytest.raises(ConfigurationError, match="Unsupported validation type"):
            parse_descriptor(remove_bg_config)

    def test_empty_union_rejected(self, upscaler_config):
        upscaler_config["fieldValidation"]["scale"]["values"] = []

        with pytest.raises(ConfigurationError, match="Invalid tool config field"):
            parse_descriptor(upscaler_config)


class TestMappingNormalization:
    """Test normalization of request body mapping entries."""

    def test_plain_string_naming_a_field_reads_input(self, remove_bg_descriptor):
        rule = remove_bg_descriptor.request_body_mapping["image_url"]

        assert isinstance(rule, FromInput)
        assert rule.field == "imageUrl"

    def test_plain_string_not_naming_a_field_is_static(self, remove_bg_config):
        remove_bg_config["requestBodyMapping"]["model"] = "fast"
        descriptor = ToolDescriptor.model_validate(remove_bg_config)

        rule = descriptor.request_body_mapping["model"]
        assert isinstance(rule, Static)
        assert rule.value == "fast"

    def test_structured_entries_map_directly(self, upscaler_config):
        upscaler_config["requestBodyMapping"]["quality"] = {"source": "static", "value": "imageUrl"}
        descriptor = ToolDescriptor.model_validate(upscaler_config)

        assert isinstance(descriptor.request_body_mapping["image_url"], FromInput)
        # tagged static wins even when its value names an input field
        assert isinstance(descriptor.request_body_mapping["quality"], Static)

    def test_mapping_keeps_declaration_order(self, upscaler_descriptor):
        assert list(upscaler_descriptor.request_body_mapping) == ["image_url", "scale"]


class TestCheckDescriptor:
    """Test the cross-reference invariants."""

    def test_valid_descriptors_pass(self, remove_bg_descriptor, upscaler_descriptor):
        check_descriptor(remove_bg_descriptor)
        check_descriptor(upscaler_descriptor)

    def test_required_field_without_validation(self, remove_bg_config):
        remove_bg_config["inputSchema"]["required"].append("mask")

        with pytest.raises(ConfigurationError) as exc_info:
            check_descriptor(parse_descriptor(remove_bg_config))

        assert exc_info.value.message == "Required field mask missing fieldValidation in tool remove_bg"

    def test_default_without_validation(self, upscaler_config):
        upscaler_config["defaultValues"]["format"] = "png"
        upscaler_config["requestBodyMapping"]["format"] = "format"

        with pytest.raises(ConfigurationError) as exc_info:
            check_descriptor(parse_descriptor(upscaler_config))

        assert exc_info.value.message == "Default value field format missing fieldValidation in tool image_upscaler"

    def test_default_without_mapping(self, upscaler_config):
        del upscaler_config["requestBodyMapping"]["scale"]

        with pytest.raises(ConfigurationError) as exc_info:
            check_descriptor(parse_descriptor(upscaler_config))

        assert exc_info.value.message == (
            "Default value field scale not found in requestBodyMapping for tool image_upscaler"
        )

    def test_default_referenced_as_mapping_value(self, upscaler_config):
        upscaler_config["requestBodyMapping"] = {
            "image_url": "imageUrl",
            "upscale_factor": {"source": "input", "value": "scale"},
        }

        check_descriptor(parse_descriptor(upscaler_config))

    def test_default_referenced_as_mapping_key(self, upscaler_config):
        upscaler_config["requestBodyMapping"]["scale"] = {"source": "static", "value": 4}

        check_descriptor(parse_descriptor(upscaler_config))


class TestToolRegistry:
    """Test registry operations."""

    def test_initial_descriptors_in_order(self, registry):
        assert registry.names() == ["remove_bg", "image_upscaler"]
        assert [d.name for d in registry.all()] == ["remove_bg", "image_upscaler"]
        assert len(registry) == 2
        assert "remove_bg" in registry
        assert "missing" not in registry

    def test_get_and_has(self, registry):
        assert registry.get("remove_bg").api_endpoint == "/api/remove-bg"
        assert registry.get("missing") is None
        assert registry.has("image_upscaler")
        assert not registry.has("missing")

    def test_register_duplicate_rejected(self, registry, remove_bg_config):
        with pytest.raises(ConfigurationError, match="Tool remove_bg already exists"):
            registry.register(remove_bg_config)

    def test_register_invalid_rejected(self, remove_bg_config):
        registry = ToolRegistry()
        remove_bg_config["inputSchema"]["required"].append("mask")

        with pytest.raises(ConfigurationError):
            registry.register(remove_bg_config)
        assert len(registry) == 0

    def test_update_replaces_in_place(self, registry, remove_bg_config):
        remove_bg_config["description"] = "Remove background v2"

        updated = registry.update("remove_bg", remove_bg_config)

        assert registry.get("remove_bg") is updated
        assert registry.get("remove_bg").description == "Remove background v2"
        assert registry.names() == ["remove_bg", "image_upscaler"]

    def test_update_rename_keeps_position(self, registry, remove_bg_config):
        remove_bg_config["name"] = "remove_background"

        registry.update("remove_bg", remove_bg_config)

        assert registry.names() == ["remove_background", "image_upscaler"]

    def test_update_unknown_name(self, registry, remove_bg_config):
        with pytest.raises(ConfigurationError, match="Tool ghost not found"):
            registry.update("ghost", remove_bg_config)

    def test_update_invalid_descriptor_keeps_old(self, registry, upscaler_config):
        previous = registry.get("image_upscaler")
        del upscaler_config["requestBodyMapping"]["scale"]

        with pytest.raises(ConfigurationError):
            registry.update("image_upscaler", upscaler_config)

        assert registry.get("image_upscaler") is previous

    def test_remove(self, registry):
        assert registry.remove("remove_bg") is True
        assert registry.remove("remove_bg") is False
        assert registry.names() == ["image_upscaler"]

    def test_validate_all(self, registry):
        assert registry.validate_all() is True

    def test_concurrent_readers_see_whole_descriptors(self, registry, remove_bg_config):
        descriptions = {"Remove image background", "Remove background v2"}
        seen = set()
        errors = []

        def reader():
            for _ in range(500):
                descriptor = registry.get("remove_bg")
                if descriptor is None:
                    errors.append("missing")
                else:
                    seen.add(descriptor.description)

        def writer():
            for i in range(100):
                config = dict(remove_bg_config)
                config["description"] = "Remove background v2" if i % 2 == 0 else "Remove image background"
                registry.update("remove_bg", config)

        threads = [threading.Thread(target=reader) for _ in range(4)] + [threading.Thread(target=writer)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert seen <= descriptions


class TestLoadToolConfigs:
    """Test loading tool configuration files."""

    def test_packaged_config_is_valid(self):
        registry = ToolRegistry.from_file(DEFAULT_TOOLS_CONFIG)

        assert registry.names() == ["remove_bg", "image_upscaler"]
        assert registry.validate_all()

    def test_json_file(self, tmp_path, remove_bg_config):
        path = tmp_path / "tools.json"
        path.write_text(json.dumps({"tools": [remove_bg_config]}))

        assert load_tool_configs(path) == [remove_bg_config]

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "tools.yaml"
        path.write_text(
            "tools:\n"
            "  - name: remove_bg\n"
            "    description: Remove image background\n"
            "    apiEndpoint: /api/remove-bg\n"
            "    inputSchema:\n"
            "      type: object\n"
            "      properties:\n"
            "        imageUrl: {type: string, description: Image URL}\n"
            "      required: [imageUrl]\n"
            "    requestBodyMapping:\n"
            "      image_url: imageUrl\n"
            "    fieldValidation:\n"
            "      imageUrl: {type: string, validation: url, errorMessage: Invalid image URL}\n"
        )

        registry = ToolRegistry.from_file(path)

        assert registry.get("remove_bg").request_body_mapping["image_url"] == FromInput(value="imageUrl")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Failed to load tool configuration"):
            load_tool_configs(tmp_path / "absent.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "tools.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Failed to load tool configuration"):
            load_tool_configs(path)

    def test_invalid_descriptor_in_file(self, tmp_path, upscaler_config):
        del upscaler_config["requestBodyMapping"]["scale"]
        path = tmp_path / "tools.json"
        path.write_text(json.dumps({"tools": [upscaler_config]}))

        with pytest.raises(ConfigurationError, match="not found in requestBodyMapping"):
            ToolRegistry.from_file(path)
