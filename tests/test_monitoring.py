import json
import logging

from spellcrawl.utils.config import LoggingConfig
from spellcrawl.utils.logger import JSONFormatter, get_record_logger, setup_logging
from spellcrawl.utils.monitoring import MetricsCollector, SpellCrawlMonitor


def test_monitor_tracks_checked_records_and_errors() -> None:
    monitor = SpellCrawlMonitor()

    monitor.record_checked("http://a", 0.5, occurrences=3)
    monitor.record_checked("http://b", 1.5, occurrences=0)
    monitor.record_error("timeout")

    values = monitor.metrics.get_current_values()
    assert values["records_checked_total"] == 2
    assert values["misspellings_total"] == 3
    assert values["errors_total"] == 1
    assert values["fetch_time_seconds"] == 1.5


def test_open_session_gauge() -> None:
    monitor = SpellCrawlMonitor()

    monitor.session_opened()
    monitor.session_opened()
    monitor.session_closed()

    assert monitor.metrics.get_metric("open_sessions").current_value == 1


def test_prometheus_registry_mirrors_counters() -> None:
    collector = MetricsCollector(enable_prometheus=True)
    monitor = SpellCrawlMonitor(collector)

    monitor.record_checked("http://a", 0.2, occurrences=4)
    monitor.record_error("fetch")
    monitor.record_error("fetch")

    registry = collector.prometheus_registry
    assert registry.get_sample_value("spellcrawl_records_checked_total") == 1
    assert registry.get_sample_value("spellcrawl_misspellings_total") == 4
    assert registry.get_sample_value("spellcrawl_errors_total", {"error_type": "fetch"}) == 2


def test_metrics_export(tmp_path) -> None:
    monitor = SpellCrawlMonitor()
    monitor.record_checked("http://a", 0.1, occurrences=1)
    path = tmp_path / "metrics.json"

    monitor.metrics.export_metrics_json(str(path))

    exported = json.loads(path.read_text(encoding="utf-8"))
    assert exported["metrics"]["records_checked_total"]["current_value"] == 1


def test_record_logger_prefixes_label(caplog) -> None:
    log = get_record_logger("spellcrawl.test", "Home", "http://x")

    with caplog.at_level(logging.INFO, logger="spellcrawl.test"):
        log.info("Processing")

    record = caplog.records[-1]
    assert record.getMessage() == "[Home] Processing"
    assert record.target == "http://x"


def test_json_formatter_includes_record_context() -> None:
    record = logging.LogRecord("spellcrawl", logging.ERROR, __file__, 1, "boom", None, None)
    record.label = "Home"
    record.target = "http://x"

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "boom"
    assert entry["label"] == "Home"
    assert entry["target"] == "http://x"


def test_setup_logging_creates_log_files(tmp_path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging(LoggingConfig(file=str(tmp_path / "logs" / "run.log")))
        logging.getLogger("spellcrawl.test").error("written")
        for handler in root.handlers:
            handler.flush()

        assert "written" in (tmp_path / "logs" / "run.log").read_text(encoding="utf-8")
        assert "written" in (tmp_path / "logs" / "errors.log").read_text(encoding="utf-8")
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


def test_summary_reports_runtime_and_rate() -> None:
    monitor = SpellCrawlMonitor()
    monitor.record_checked("http://a", 0.1, occurrences=0)

    summary = monitor.get_summary()

    assert summary["runtime_seconds"] >= 0
    assert summary["metrics"]["records_checked_total"] == 1
    assert "misspellings_total" not in summary["metrics"]
    assert summary["rates"]["records_per_second"] >= 0
