import pytest

from exception_graph.config import AnalyzerConfig

ENV_VARS = ("EXCEPTION_GRAPH_PLATFORM_PREFIXES", "EXCEPTION_GRAPH_UNKNOWN_COMPATIBLE",
            "EXCEPTION_GRAPH_OUTPUT_DIR")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # set first so the original (unset) state is restored after the test
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_defaults(tmp_path):
    config = AnalyzerConfig.from_env(str(tmp_path / "missing.env"))
    assert config == AnalyzerConfig()
    assert config.platform_prefixes == ("java", "javax")
    assert config.unknown_class_compatible


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("EXCEPTION_GRAPH_PLATFORM_PREFIXES", "java, org.vendor ,")
    monkeypatch.setenv("EXCEPTION_GRAPH_UNKNOWN_COMPATIBLE", "false")
    monkeypatch.setenv("EXCEPTION_GRAPH_OUTPUT_DIR", "reports")
    config = AnalyzerConfig.from_env(str(tmp_path / "missing.env"))
    assert config.platform_prefixes == ("java", "org.vendor")
    assert not config.unknown_class_compatible
    assert config.output_dir == "reports"


def test_dotenv_file_is_loaded(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("EXCEPTION_GRAPH_OUTPUT_DIR=from_dotenv\n")
    assert AnalyzerConfig.from_env(str(env_file)).output_dir == "from_dotenv"


def test_invalid_bool_is_rejected(monkeypatch, tmp_path):
    monkeypatch.setenv("EXCEPTION_GRAPH_UNKNOWN_COMPATIBLE", "maybe")
    with pytest.raises(ValueError):
        AnalyzerConfig.from_env(str(tmp_path / "missing.env"))


def test_is_platform_package():
    config = AnalyzerConfig()
    assert config.is_platform_package("java.io")
    assert config.is_platform_package("javax.net")
    assert not config.is_platform_package("com.acme")
    assert not config.is_platform_package(None)
    assert config.is_platform_package("com.acme", ("com.",))
