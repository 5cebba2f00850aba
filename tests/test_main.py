import json
import logging

import pytest

import main
from fakes import HANG, FakeFetcher, WordListOracle
from spellcrawl.crawler.fetcher import FetcherInitError


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def workspace(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        "logging:\n"
        f"  file: {tmp_path / 'logs' / 'run.log'}\n"
        "crawler:\n"
        "  fetch_timeout: 0.1\n",
        encoding="utf-8",
    )
    return tmp_path


def write_input(workspace, rows):
    path = workspace / "urls.csv"
    path.write_text("title,url\n" + "".join(f"{row}\n" for row in rows), encoding="utf-8")
    return str(path)


@pytest.fixture
def fake_pipeline(monkeypatch):
    created = {}

    def install(pages, misspelled):
        def fake_create_fetcher(config):
            created["fetcher"] = FakeFetcher(pages)
            return created["fetcher"]

        monkeypatch.setattr(main, "create_fetcher", fake_create_fetcher)
        monkeypatch.setattr(main.SpellCrawlApp, "build_oracle",
                            lambda self, config: WordListOracle(misspelled))
        return created

    return install


def test_single_page_report(workspace, fake_pipeline, capsys) -> None:
    fake_pipeline({"http://x.test/": "Helo wrold"}, {"Helo", "wrold"})
    csv_path = write_input(workspace, ["A,http://x.test/"])

    code = main.main([csv_path, "--config", str(workspace / "config.yaml")])

    out = capsys.readouterr().out
    assert code == 0
    assert "Records processed: 1 of 1 (0 failed)" in out
    assert "Total occurrences: 2" in out
    assert "Unique words: 2" in out
    assert "    - **Helo** wrold" in out


def test_failed_record_does_not_fail_the_run(workspace, fake_pipeline, capsys) -> None:
    created = fake_pipeline({"http://ok.test/": "Helo", "http://slow.test/": HANG}, {"Helo"})
    csv_path = write_input(workspace, ["Ok,http://ok.test/", "Slow,http://slow.test/"])

    code = main.main([csv_path, "--config", str(workspace / "config.yaml"), "--format", "json"])

    document = json.loads(capsys.readouterr().out)
    assert code == 0
    assert document["summary"]["records_attempted"] == 2
    assert document["summary"]["records_processed"] == 1
    assert document["summary"]["total_occurrences"] == 1
    assert [entry["word"] for entry in document["words"]] == ["Helo"]
    assert document["failures"][0]["label"] == "Slow"
    assert created["fetcher"].opened == created["fetcher"].closed == 2


def test_shared_word_ranks_first(workspace, fake_pipeline, capsys) -> None:
    fake_pipeline(
        {"http://a.test/": "alone teh", "http://b.test/": "teh again"},
        {"alone", "teh"},
    )
    csv_path = write_input(workspace, ["A,http://a.test/", "B,http://b.test/"])

    main.main([csv_path, "--config", str(workspace / "config.yaml")])

    out = capsys.readouterr().out
    assert out.index('"teh" - 2 page(s)') < out.index('"alone" - 1 page(s)')


def test_header_only_input(workspace, fake_pipeline, capsys) -> None:
    created = fake_pipeline({}, set())
    csv_path = write_input(workspace, [])

    code = main.main([csv_path, "--config", str(workspace / "config.yaml")])

    out = capsys.readouterr().out
    assert code == 0
    assert "Records processed: 0 of 0 (0 failed)" in out
    assert "Total occurrences: 0" in out
    assert created["fetcher"].opened == 0


def test_report_written_to_file(workspace, fake_pipeline, capsys) -> None:
    fake_pipeline({"http://x.test/": "Helo"}, {"Helo"})
    csv_path = write_input(workspace, ["A,http://x.test/"])
    output = workspace / "out" / "report.txt"

    code = main.main([csv_path, "--config", str(workspace / "config.yaml"), "-o", str(output)])

    assert code == 0
    assert capsys.readouterr().out == ""
    assert "Unique words: 1" in output.read_text(encoding="utf-8")


@pytest.mark.parametrize("batch_size", ["0", "-2"])
def test_invalid_batch_size_is_fatal_before_fetching(workspace, fake_pipeline, batch_size) -> None:
    created = fake_pipeline({"http://x.test/": "Helo"}, {"Helo"})
    csv_path = write_input(workspace, ["A,http://x.test/"])

    code = main.main([csv_path, "--config", str(workspace / "config.yaml"), "--batch-size", batch_size])

    assert code == 1
    assert "fetcher" not in created


def test_missing_input_is_fatal(workspace, fake_pipeline) -> None:
    created = fake_pipeline({}, set())

    code = main.main([str(workspace / "nope.csv"), "--config", str(workspace / "config.yaml")])

    assert code == 1
    assert "fetcher" not in created


def test_malformed_input_is_fatal(workspace, fake_pipeline) -> None:
    fake_pipeline({}, set())
    csv_path = write_input(workspace, ["A,http://x.test/,extra"])

    assert main.main([csv_path, "--config", str(workspace / "config.yaml")]) == 1


def test_fetch_environment_failure_is_fatal(workspace, monkeypatch) -> None:
    class BrokenFetcher(FakeFetcher):
        async def start(self):
            raise FetcherInitError("no browser installed")

    monkeypatch.setattr(main, "create_fetcher", lambda config: BrokenFetcher({}))
    monkeypatch.setattr(main.SpellCrawlApp, "build_oracle", lambda self, config: WordListOracle(set()))
    csv_path = write_input(workspace, ["A,http://x.test/"])

    assert main.main([csv_path, "--config", str(workspace / "config.yaml")]) == 1


def test_dry_run_fetches_nothing(workspace, fake_pipeline, capsys) -> None:
    created = fake_pipeline({"http://x.test/": "Helo"}, {"Helo"})
    csv_path = write_input(workspace, ["A,http://x.test/"])

    code = main.main([csv_path, "--config", str(workspace / "config.yaml"), "--dry-run"])

    assert code == 0
    assert created["fetcher"].opened == 0
    assert capsys.readouterr().out == ""


def test_overrides_from_arguments() -> None:
    args = main.build_parser().parse_args(["in.csv", "--batch-size", "3", "--backend", "browser"])

    overrides = main.build_overrides(args)

    assert overrides["input"]["file"] == "in.csv"
    assert overrides["crawler"]["batch_size"] == 3
    assert overrides["crawler"]["backend"] == "browser"
    assert overrides["report"]["format"] is None
