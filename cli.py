import argparse
import dataclasses
import json
import logging
import os
import sys
import uuid as _uuid

from config.settings import get_settings
from csv_storage import CSVSink
from pipelines.collect import IncrementalCollector
from pipelines.runner import RunContext
from services.checkpoint_store import CheckpointStore
from services.reporting import print_summary
from services.shutdown import ShutdownCoordinator
from sources.registry import get_driver
from sqlite_storage import SQLiteSink
from utils.errors import HarvestError
from utils.logging_setup import init_logging
import sources  # noqa: F401 ensure registration


def _build_sink(kind: str, settings, output_dir: str):
    if kind == "sqlite":
        return SQLiteSink(settings.db_path)
    if kind == "csv":
        return CSVSink(output_dir)
    raise HarvestError(f"Unknown sink: {kind}")


def _store(args, settings) -> CheckpointStore:
    return CheckpointStore(args.checkpoint, history_limit=settings.fingerprint_history_limit)


def cmd_run(args):
    settings = get_settings()
    if args.headless is not None:
        settings = dataclasses.replace(settings, headless=args.headless)
    if not os.getenv("RUN_ID"):
        os.environ["RUN_ID"] = _uuid.uuid4().hex

    # Fails before the browser or checkpoint are touched
    credentials = settings.credentials()
    url = args.url or settings.directory_url
    store = _store(args, settings)
    sink = _build_sink(args.sink or settings.sink, settings, args.output_dir or settings.output_dir)
    driver = get_driver(args.driver or settings.page_driver, settings=settings)

    logging.info("Starting scraper for %s", url)
    ctx = RunContext()
    collector = IncrementalCollector(driver, sink, store, settings=settings, ctx=ctx)
    try:
        with ShutdownCoordinator(ctx, store):
            summary = collector.run(url, credentials)
    finally:
        driver.close()
        if hasattr(sink, "close"):
            sink.close()
    print_summary(summary, store.path)
    return summary


def cmd_status(args):
    settings = get_settings()
    store = _store(args, settings)
    if not store.exists():
        print("No checkpoint")
        return
    checkpoint = store.load()
    out = {
        "path": str(store.path),
        "lastProfileIndex": checkpoint.last_index,
        "csvFilename": checkpoint.sink_id,
        "processedProfileCount": len(checkpoint.processed_fingerprints),
    }
    print(json.dumps(out, indent=2, ensure_ascii=False))


def cmd_reset(args):
    settings = get_settings()
    store = _store(args, settings)
    if not store.exists():
        print("No checkpoint to remove")
        return
    store.clear()
    print(f"Removed checkpoint {store.path}")


def main(argv=None):
    settings = get_settings()
    init_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="Incremental directory harvester")
    parser.add_argument("--checkpoint", default=settings.checkpoint_path, help="Path to checkpoint JSON (default from settings)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Collect the directory listing (resumes from checkpoint)")
    p_run.add_argument("--url", "-u", type=str, default=None, help="Directory URL (default: DIRECTORY_URL or built-in)")
    p_run.add_argument("--sink", choices=["csv", "sqlite"], default=None, help="Output sink (default from settings)")
    p_run.add_argument("--driver", default=None, help="Page driver name (default from settings)")
    p_run.add_argument("--output-dir", "-o", default=None, help="Directory for CSV output (default from settings)")
    p_run.add_argument("--headless", dest="headless", action="store_true", default=None, help="Run the browser headless")
    p_run.add_argument("--no-headless", dest="headless", action="store_false", help="Show the browser window")
    p_run.set_defaults(func=cmd_run)

    p_status = sub.add_parser("status", help="Show checkpoint progress")
    p_status.set_defaults(func=cmd_status)

    p_reset = sub.add_parser("reset", help="Delete the checkpoint and start over next run")
    p_reset.set_defaults(func=cmd_reset)

    args = parser.parse_args(argv)
    try:
        args.func(args)
    except HarvestError as e:
        logging.error(f"Run failed: {e}")
        logging.debug("Full traceback:", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        logging.info("Process interrupted by user")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Unexpected error: {e}")
        logging.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
