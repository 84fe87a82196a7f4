import logging
import threading

from prometheus_client import CollectorRegistry, generate_latest

from .collector import Collector
from .errors import UnknownTarget


class ScrapeHandler:
    """A target's collector bound to its own CollectorRegistry."""

    def __init__(self, collector):
        self.collector = collector
        self.registry = CollectorRegistry()
        self.registry.register(collector)

    def render(self):
        # generate_latest drives collector.collect(), i.e. one full scrape.
        return generate_latest(self.registry)


class TargetRegistry:
    """
    Maps a configured connection string to its long-lived ScrapeHandler.

    Handlers are created on first request and kept for the life of the process.
    Creation is done under a lock so concurrent first requests for the same
    target share one Collector.
    """

    def __init__(self, config, collector_factory=None):
        self.config = config
        self._collector_factory = collector_factory or Collector
        self._handlers = {}
        self._lock = threading.Lock()

    def resolve(self, target_id):
        target = self.config.find_target(target_id)
        if target is None:
            raise UnknownTarget(target_id)

        handler = self._handlers.get(target_id)
        if handler is not None:
            return handler

        with self._lock:
            handler = self._handlers.get(target_id)
            if handler is None:
                logging.info(f"Creating collector for target '{target_id}'")
                collector = self._collector_factory(target, self.config.settings)
                handler = ScrapeHandler(collector)
                self._handlers[target_id] = handler
        return handler

    def __contains__(self, target_id):
        return target_id in self._handlers

    def __len__(self):
        return len(self._handlers)
