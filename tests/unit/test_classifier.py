import pytest

from protolock_gate import classifier as classifier_module
from protolock_gate.classifier import detect_classifier, resolve_platform
from protolock_gate.errors import ConfigurationError


@pytest.mark.parametrize("value", [None, "", "   "])
def test_missing_classifier_is_fatal(value):
    with pytest.raises(ConfigurationError) as excinfo:
        resolve_platform(value)
    assert "classifier" in str(excinfo.value)


def test_windows_classifier():
    platform = resolve_platform("windows-x86_64")
    assert platform.exe_suffix == ".exe"
    assert platform.path_separator == ";"
    assert platform.executable_name("plugin") == "plugin.exe"
    assert platform.executable_name("plugin.EXE") == "plugin.EXE"


def test_posix_classifier():
    platform = resolve_platform(" linux-x86_64 ")
    assert platform.value == "linux-x86_64"
    assert platform.exe_suffix == ""
    assert platform.path_separator == ":"
    assert platform.executable_name("plugin") == "plugin"


@pytest.mark.parametrize(
    "system,machine,expected",
    [
        ("Linux", "x86_64", "linux-x86_64"),
        ("Darwin", "arm64", "osx-aarch_64"),
        ("Windows", "AMD64", "windows-x86_64"),
        ("Linux", "aarch64", "linux-aarch_64"),
    ],
)
def test_detect_classifier(monkeypatch, system, machine, expected):
    monkeypatch.setattr(classifier_module.platform, "system", lambda: system)
    monkeypatch.setattr(classifier_module.platform, "machine", lambda: machine)
    assert detect_classifier() == expected


def test_detect_unknown_architecture(monkeypatch):
    monkeypatch.setattr(classifier_module.platform, "system", lambda: "Linux")
    monkeypatch.setattr(classifier_module.platform, "machine", lambda: "mips")
    assert detect_classifier() is None
