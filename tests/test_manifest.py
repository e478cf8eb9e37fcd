import pytest

from capstan.manifest import (
    Package,
    parse_package,
    parse_package_manifest,
    parse_package_manifest_or_default,
)
from capstan.yamltime import parse_yaml_time

FULL = """\
name: eu.example.app
title: Example App
author: someone@example.com
version: "1.2"
require:
  - osv.bootstrap
  - osv.cli
binary:
  linux: app.so
created: 2017-09-14 18:08
platform: x86_64
"""


def test_parse_full_package():
    pkg = parse_package(FULL)
    assert pkg.name == "eu.example.app"
    assert pkg.title == "Example App"
    assert pkg.author == "someone@example.com"
    assert pkg.version == "1.2"
    assert pkg.require == ["osv.bootstrap", "osv.cli"]
    assert pkg.binary == {"linux": "app.so"}
    assert str(pkg.created) == "2017-09-14 18:08"
    assert pkg.platform == "x86_64"


def test_optional_fields_default():
    pkg = parse_package(b"name: a\ntitle: b\nauthor: c\n")
    assert pkg.require == []
    assert pkg.binary == {}
    assert pkg.version == ""
    assert str(pkg.created) == "N/A"


@pytest.mark.parametrize(
    "text, message",
    [
        ("title: b\nauthor: c\n", "'name' must be provided for the package"),
        ("name: a\nauthor: c\n", "'title' must be provided for the package"),
        ("name: a\ntitle: b\n", "'author' must be provided for the package"),
    ],
)
def test_required_fields(text, message):
    with pytest.raises(ValueError) as info:
        parse_package(text)
    assert str(info.value) == message


def test_wrong_type_rejected():
    with pytest.raises(ValueError):
        parse_package("name: a\ntitle: b\nauthor: c\nrequire: {x: y}\n")


def test_string_columns():
    pkg = Package(
        name="a",
        title="b",
        version="1",
        created=parse_yaml_time("2017-09-14 18:08"),
        platform="x",
    )
    text = str(pkg)
    assert text.split() == ["a", "b", "1", "2017-09-14", "18:08", "x"]
    assert text.index("b") == 51
    assert text == text.strip()


def test_manifest_file_round(tmp_path):
    path = tmp_path / "package.yaml"
    path.write_text(FULL, encoding="utf-8")
    assert parse_package_manifest(path) == parse_package(FULL)


def test_missing_manifest(tmp_path):
    path = tmp_path / "package.yaml"
    with pytest.raises(FileNotFoundError, match="does not exist"):
        parse_package_manifest(path)


def test_default_manifest(tmp_path, capsys):
    pkg = parse_package_manifest_or_default(tmp_path / "package.yaml")
    assert (pkg.name, pkg.title, pkg.author) == ("App", "App", "Anonymous")
    assert pkg.created.get_time() is not None
    assert "Assuming default manifest" in capsys.readouterr().out


def test_default_manifest_reads_existing(tmp_path):
    path = tmp_path / "package.yaml"
    path.write_text(FULL, encoding="utf-8")
    assert parse_package_manifest_or_default(path).name == "eu.example.app"