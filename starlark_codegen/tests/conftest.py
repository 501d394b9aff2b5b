"""Unit tests configuration file."""

from pathlib import Path
from textwrap import dedent

import pytest

from starlark_codegen.generator import GeneratorConfig, generate, load_package
from starlark_codegen.runtime import starkit, starlark

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def example_api(monkeypatch):
    """Path of the example API package, importable for the duration of a test."""
    monkeypatch.syspath_prepend(str(FIXTURES_DIR))
    return FIXTURES_DIR / "exampleapi" / "v1alpha1"


@pytest.fixture
def config():
    return GeneratorConfig()


@pytest.fixture
def bindings(example_api, config):
    """Namespace of the module generated for the example API."""
    code = generate(example_api, config)
    gbl: dict = {}
    exec(code, gbl)
    return gbl


@pytest.fixture
def plugin(bindings):
    return bindings["Plugin"]()


@pytest.fixture
def env(plugin):
    env = starkit.Environment()
    plugin.register_symbols(env)
    return env


@pytest.fixture
def thread(tmp_path):
    return starlark.Thread(base_dir=tmp_path)


@pytest.fixture
def load_source(tmp_path, config):
    """Load a package from a single module of declarations."""

    def load(source: str, package: str = "example.api"):
        directory = tmp_path / package.rsplit(".", 1)[-1]
        directory.mkdir(exist_ok=True)
        (directory / "types.py").write_text(dedent(source), encoding="utf-8")
        return load_package(directory, config, package=package)

    return load
