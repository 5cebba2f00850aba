import pytest

from spellcrawl.utils.config import ConfigError, load_config


def write_config(tmp_path, content: str) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_defaults_without_file() -> None:
    config = load_config()

    assert config.crawler.batch_size == 5
    assert config.crawler.fetch_timeout == 30.0
    assert config.crawler.backend == "http"
    assert config.crawler.wait_until == "domcontentloaded"
    assert config.report.context_window == 30
    assert config.report.format == "text"
    assert config.input.file == "urls.csv"


def test_partial_file_keeps_other_defaults(tmp_path) -> None:
    path = write_config(tmp_path, "crawler:\n  batch_size: 8\nspelling:\n  custom_words: [spellcrawl]\n")

    config = load_config(path)

    assert config.crawler.batch_size == 8
    assert config.crawler.fetch_timeout == 30.0
    assert config.spelling.custom_words == ["spellcrawl"]


def test_overrides_win_and_none_is_ignored(tmp_path) -> None:
    path = write_config(tmp_path, "crawler:\n  batch_size: 8\n  backend: browser\n")

    config = load_config(path, {"crawler": {"batch_size": 2, "backend": None}})

    assert config.crawler.batch_size == 2
    assert config.crawler.backend == "browser"


@pytest.mark.parametrize("overrides", [
    {"crawler": {"batch_size": 0}},
    {"crawler": {"batch_size": -3}},
    {"crawler": {"fetch_timeout": 0}},
    {"crawler": {"backend": "carrier-pigeon"}},
    {"crawler": {"wait_until": "forever"}},
    {"crawler": {"browser": "netscape"}},
    {"report": {"format": "xml"}},
    {"report": {"context_window": -1}},
    {"spelling": {"min_word_length": 0}},
])
def test_invalid_values_are_rejected(overrides) -> None:
    with pytest.raises(ConfigError):
        load_config(None, overrides)


def test_unknown_keys_are_rejected(tmp_path) -> None:
    with pytest.raises(ConfigError, match="batchsize"):
        load_config(write_config(tmp_path, "crawler:\n  batchsize: 3\n"))


def test_unknown_sections_are_rejected(tmp_path) -> None:
    with pytest.raises(ConfigError, match="redis"):
        load_config(write_config(tmp_path, "redis:\n  host: localhost\n"))


def test_missing_file_is_an_error(tmp_path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "missing.yaml"))


def test_malformed_yaml_is_an_error(tmp_path) -> None:
    with pytest.raises(ConfigError):
        load_config(write_config(tmp_path, "crawler: [unclosed\n"))


def test_empty_file_uses_defaults(tmp_path) -> None:
    assert load_config(write_config(tmp_path, "")).crawler.batch_size == 5


@pytest.mark.parametrize("content,field", [
    ('crawler:\n  fetch_timeout: "30"\n', "fetch_timeout"),
    ("crawler:\n  batch_size: 2.5\n", "batch_size"),
    ("crawler:\n  batch_size: true\n", "batch_size"),
    ("crawler:\n  max_content_size: big\n", "max_content_size"),
    ("report:\n  context_window: wide\n", "context_window"),
    ("spelling:\n  min_word_length: [3]\n", "min_word_length"),
    ("monitoring:\n  prometheus_port: http\n", "prometheus_port"),
])
def test_wrongly_typed_numbers_raise_config_error(tmp_path, content, field) -> None:
    with pytest.raises(ConfigError, match=field):
        load_config(write_config(tmp_path, content))


def test_integer_timeout_is_accepted(tmp_path) -> None:
    config = load_config(write_config(tmp_path, "crawler:\n  fetch_timeout: 10\n"))

    assert config.crawler.fetch_timeout == 10
