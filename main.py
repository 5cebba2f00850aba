#!/usr/bin/env python3
"""
Main entry point for the spell crawler.
"""

import asyncio
import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from spellcrawl import __version__
from spellcrawl.crawler.fetcher import FetcherInitError, create_fetcher
from spellcrawl.crawler.records import Record, RecordSourceError, load_records
from spellcrawl.crawler.scheduler import BatchScheduler
from spellcrawl.crawler.spelling import SpellingOracle
from spellcrawl.report.aggregator import aggregate
from spellcrawl.report.renderer import ReportRenderer
from spellcrawl.utils.config import Config, ConfigError, load_config
from spellcrawl.utils.logger import setup_logging, log_system_info
from spellcrawl.utils.monitoring import initialize_monitoring


FATAL_ERRORS = (ConfigError, RecordSourceError, FetcherInitError)


class SpellCrawlApp:
    """Main application class for the spell crawler."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.scheduler: Optional[BatchScheduler] = None

    def build_oracle(self, config: Config) -> SpellingOracle:
        spelling = config.spelling
        try:
            return SpellingOracle(
                language=spelling.language,
                min_word_length=spelling.min_word_length,
                ignore_capitalized=spelling.ignore_capitalized,
                custom_words=spelling.custom_words,
                custom_dictionaries=spelling.custom_dictionaries,
            )
        except (OSError, ValueError) as e:
            raise ConfigError(f"Could not initialize spelling dictionary: {e}") from e

    async def run(self, config_path: Optional[str] = None,
                  overrides: Optional[Dict[str, Dict[str, Any]]] = None,
                  dry_run: bool = False) -> int:
        """Run the spell crawler and return the process exit code."""
        try:
            config = load_config(config_path, overrides)
            setup_logging(config.logging)

            self.logger.info("=== SPELL CRAWLER STARTING ===")
            log_system_info()
            self.logger.info(f"Configuration loaded from: {config_path or 'defaults'}")
            self.logger.info(f"Input file: {config.input.file}")
            self.logger.info(f"Backend: {config.crawler.backend}")
            self.logger.info(f"Batch size: {config.crawler.batch_size}")
            self.logger.info(f"Fetch timeout: {config.crawler.fetch_timeout}s")

            records = load_records(config.input.file, config.input.encoding)
            oracle = self.build_oracle(config)
            monitor = initialize_monitoring(
                config.monitoring.metrics_enabled,
                config.monitoring.prometheus_port
            )

            fetcher = create_fetcher(config.crawler)
            self.scheduler = BatchScheduler(
                fetcher,
                oracle,
                batch_size=config.crawler.batch_size,
                fetch_timeout=config.crawler.fetch_timeout,
                context_window=config.report.context_window,
                monitor=monitor,
            )

            if dry_run:
                self.logger.info("DRY RUN MODE: No pages will be fetched")
                await self._dry_run(records)
                return 0

            outcomes = await self._crawl(records)

            report = aggregate(outcomes)
            renderer = ReportRenderer(config.report.highlight_start, config.report.highlight_end)
            self._write_report(
                renderer.render(report, config.report.format, self.scheduler.failures),
                config.report.output
            )

            if config.monitoring.export_file:
                monitor.metrics.export_metrics_json(config.monitoring.export_file)

        except FATAL_ERRORS as e:
            self.logger.error(f"Fatal error: {e}")
            return 1

        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return 1

        finally:
            self.logger.info("=== SPELL CRAWLER FINISHED ===")

        return 0

    async def _crawl(self, records: List[Record]):
        if not records:
            self.logger.info("No records to process")
            return []

        async with self.scheduler.fetcher:
            return await self.scheduler.run(records)

    async def _dry_run(self, records: List[Record]):
        """Start and stop the fetch environment without fetching anything."""
        self.logger.info(f"Would process {len(records)} records in "
                         f"{len(self.scheduler.batches(records))} batches")
        async with self.scheduler.fetcher:
            self.logger.info("Fetch environment started successfully")
        self.logger.info("Dry run completed")

    def _write_report(self, text: str, output: Optional[str]):
        if output:
            output_path = Path(output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(text, encoding='utf-8')
            self.logger.info(f"Report written to {output_path}")
        else:
            sys.stdout.write(text)
            sys.stdout.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Spell check a list of web pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py urls.csv                       # Check pages listed in urls.csv
  python main.py --config config.yaml           # Take everything from a config file
  python main.py urls.csv --batch-size 10       # Ten pages at a time
  python main.py urls.csv --backend browser     # Render pages in a headless browser
  python main.py urls.csv --format json -o report.json
  python main.py urls.csv --dry-run             # Validate input and configuration only
        """
    )

    parser.add_argument(
        'input',
        nargs='?',
        help='CSV file with a header row and "label,target" rows (default: input.file from config)'
    )

    parser.add_argument(
        '--config',
        help='Path to a YAML configuration file'
    )

    parser.add_argument(
        '--batch-size',
        type=int,
        help='Number of pages fetched concurrently (default: 5)'
    )

    parser.add_argument(
        '--timeout',
        type=float,
        help='Per-page fetch timeout in seconds (default: 30)'
    )

    parser.add_argument(
        '--backend',
        choices=['http', 'browser'],
        help='Fetch pages over HTTP or in a headless browser (default: http)'
    )

    parser.add_argument(
        '--context-window',
        type=int,
        help='Characters of context kept on each side of a misspelling (default: 30)'
    )

    parser.add_argument(
        '--format',
        choices=['text', 'json'],
        help='Report format (default: text)'
    )

    parser.add_argument(
        '-o', '--output',
        help='Write the report to this file instead of stdout'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO)'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Validate configuration and input without fetching pages'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Spell Crawler {__version__}'
    )

    return parser


def build_overrides(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    """Map command-line options onto configuration sections."""
    return {
        'input': {'file': args.input},
        'crawler': {
            'batch_size': args.batch_size,
            'fetch_timeout': args.timeout,
            'backend': args.backend,
        },
        'report': {
            'format': args.format,
            'output': args.output,
            'context_window': args.context_window,
        },
        'logging': {'level': args.log_level},
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    app = SpellCrawlApp()
    try:
        return asyncio.run(app.run(
            config_path=args.config,
            overrides=build_overrides(args),
            dry_run=args.dry_run
        ))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
