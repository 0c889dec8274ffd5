"""Send metrics from a JSON file to Firehose.

Usage: python -m firehose_metrics metrics.json

The file holds one entry or a list of entries shaped like
``{"client": "some-client", "name": "some-name", "metrics": {...} | [...]}``.
Settings come from METRIC_* environment variables and the optional YAML file
named by CONFIG_FILE.
"""

import asyncio
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from .config.settings import load_settings
from .metric import Metric
from .notifier import CREATE_ERROR, FailureNotifier
from .utils.logging import setup_logging


logger = logging.getLogger(__name__)


class MetricSender:
    """Loads metric entries from disk and pushes them through a Metric."""

    def __init__(self, config_file: Optional[str] = None):
        self.settings = load_settings(config_file)
        setup_logging(self.settings.logging, self.settings.service_name or "firehose-metrics")

        self.metric = Metric(self.settings, notifier=FailureNotifier())
        self.failures = 0
        self.metric.on(CREATE_ERROR, self._on_create_error)

    def _on_create_error(self, batches, error):
        dropped = sum(len(batch) for batch in batches)
        self.failures += dropped
        logger.error(f"{dropped} metrics dropped: {error}")

    async def send_file(self, path: str) -> bool:
        with open(path, 'r') as f:
            entries = json.load(f)

        if not isinstance(entries, list):
            entries = [entries]

        return await self.send(entries)

    async def send(self, entries: List[Dict[str, Any]]) -> bool:
        # Entries go out one by one so a bad entry doesn't hold back the rest
        ok = True
        for entry in entries:
            delivered = await self.metric.add(entry.get('client'), entry.get('name'), entry.get('metrics'))
            ok = ok and delivered

        logger.info(f"Sent {len(entries)} entries, stats: {self.metric.get_stats()}")
        return ok and self.failures == 0


async def main():
    """Main entry point."""
    if len(sys.argv) != 2:
        print(__doc__, file=sys.stderr)
        sys.exit(2)

    sender = MetricSender(os.getenv("CONFIG_FILE"))

    try:
        ok = await sender.send_file(sys.argv[1])
    except Exception as e:
        logger.error(f"Sending metrics failed: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(0 if ok else 1)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
