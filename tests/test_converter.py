from pathlib import Path

import pytest

from build_trigger.converter import Converter
from build_trigger.converter.template import find_template_args
from build_trigger.exceptions import ConversionError
from build_trigger.models import ConfigSource, ConvertArgs, Hook, Repository
from build_trigger.store import FileTemplateStore

TESTDATA = Path(__file__).parent / "testdata"

AFTER = "3d21ec53a331a6f037a91c368710b99387d012c1"


def read(name: str) -> str:
    return (TESTDATA / name).read_text()


def convert_args(path: str, data: str) -> ConvertArgs:
    return ConvertArgs(
        repo=Repository(
            id=1,
            user_id=1,
            namespace="octocat",
            name="hello-world",
            config_path=path,
        ),
        build=Hook(trigger="octocat", event="push", after=AFTER),
        config=ConfigSource(path=path, data=data),
    )


@pytest.fixture
def converter():
    return Converter(templates=FileTemplateStore(TESTDATA))


def test_plain_document_unchanged(converter):
    data = read("plain.yml")
    assert converter.convert(convert_args(".drone.yml", data)) == data


def test_plain_document_unknown_extension(converter):
    data = "not: [valid"
    assert converter.convert(convert_args("pipeline.toml", data)) == data


def test_invalid_yaml_is_plain(converter):
    data = "steps: [unclosed"
    assert converter.convert(convert_args(".drone.yml", data)) == data


def test_jsonnet_document(converter):
    args = convert_args(".drone.jsonnet", read("single.jsonnet"))
    assert converter.convert(args) == read("single.jsonnet.golden")


def test_template_document(converter):
    args = convert_args(".drone.yml", read("template.yml"))
    assert converter.convert(args) == read("input.jsonnet.golden")


def test_template_document_deterministic(converter):
    args = convert_args(".drone.yml", read("template.yml"))
    assert converter.convert(args) == converter.convert(args)


def test_template_not_found(converter):
    data = "kind: template\nload: missing.jsonnet\ndata: {}\n"

    with pytest.raises(ConversionError, match="missing.jsonnet"):
        converter.convert(convert_args(".drone.yml", data))


def test_template_without_store():
    converter = Converter()
    args = convert_args(".drone.yml", read("template.yml"))

    with pytest.raises(ConversionError):
        converter.convert(args)


def test_template_unsupported_extension(converter):
    data = "kind: template\nload: plain.yml\n"

    with pytest.raises(ConversionError, match="unsupported"):
        converter.convert(convert_args(".drone.yml", data))


def test_template_missing_load(converter):
    data = "kind: template\ndata:\n  image: golang\n"

    with pytest.raises(ConversionError):
        converter.convert(convert_args(".drone.yml", data))


def test_malformed_jsonnet(converter):
    args = convert_args(".drone.jsonnet", "local x = ; x")

    with pytest.raises(ConversionError):
        converter.convert(args)


def test_disabled_returns_source():
    converter = Converter(enabled=False)
    data = read("single.jsonnet")
    assert converter.convert(convert_args(".drone.jsonnet", data)) == data


def test_find_template_args_multi_document():
    data = "kind: secret\nname: token\n---\n" + read("template.yml")

    template_args = find_template_args(data)

    assert template_args is not None
    assert template_args.load == "input.jsonnet"
    assert template_args.data == {
        "stepName": "my_step",
        "image": "my_image",
        "commands": "my_command",
    }


def test_find_template_args_plain():
    assert find_template_args(read("plain.yml")) is None
