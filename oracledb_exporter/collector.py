import enum
import logging
import threading
import time

from .config import Settings
from .database import close_quietly, fetch_identity, open_connection
from .errors import ConnectionFailure
from .metrics import Family, MetricFamilies
from .tasks import build_tasks, run_task, skipped


class CollectorState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    SCRAPING = "scraping"
    REPORTING = "reporting"


NO_IDENTITY = ("", "")


class ScrapeCycle:
    """State of one connect -> scrape -> report pass. Owns the connection for its duration."""

    def __init__(self, target):
        self.target = target
        self.connection = None
        self.identity = NO_IDENTITY
        self.connect_error = None
        self.results = []
        self.started = time.time()
        self.duration = 0.0
        self.state = CollectorState.IDLE
        self.history = [CollectorState.IDLE]

    def transition(self, state):
        logging.debug(f"[{self.target.connection}] {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    @property
    def up(self):
        return self.connection is not None

    @property
    def failed(self):
        return self.connect_error is not None or any(r.error is not None for r in self.results)

    @property
    def errors(self):
        errors = [self.connect_error] if self.connect_error is not None else []
        errors.extend(r.error for r in self.results if r.error is not None)
        return errors

    def close(self):
        close_quietly(self.connection)
        self.connection = None


class Collector:
    """
    prometheus_client collector for one target.

    Every collect() opens a fresh connection, runs all scrape tasks, closes the
    connection and publishes the results into the target's metric families.
    Concurrent collects of the same target run their queries in parallel; the
    publish-and-read step is serialized on the collector's lock.
    """

    def __init__(self, target, settings=None, connect=None):
        self.target = target
        self.settings = settings or Settings()
        self._connect = connect or open_connection
        self.tasks = build_tasks(target)
        self.families = MetricFamilies()
        self._lock = threading.Lock()
        self.last_cycle = None

    def connect(self):
        cycle = ScrapeCycle(self.target)
        cycle.transition(CollectorState.CONNECTING)
        try:
            conn = self._connect(self.target, self.settings)
        except Exception as e:
            cycle.connect_error = e if isinstance(e, ConnectionFailure) else ConnectionFailure(str(e))
            logging.warning(f"Cannot connect to '{self.target.connection}': {e}")
            cycle.transition(CollectorState.DISCONNECTED)
            return cycle

        try:
            cycle.identity = fetch_identity(conn)
        except ConnectionFailure as e:
            close_quietly(conn)
            cycle.connect_error = e
            logging.warning(f"Connected to '{self.target.connection}' but cannot read its identity: {e}")
            cycle.transition(CollectorState.DISCONNECTED)
            return cycle

        cycle.connection = conn
        cycle.transition(CollectorState.CONNECTED)
        return cycle

    def run_scrape_tasks(self, cycle):
        cycle.transition(CollectorState.SCRAPING)
        if cycle.connection is None:
            cycle.results = [skipped(task) for task in self.tasks]
        else:
            cycle.results = [run_task(task, cycle.connection) for task in self.tasks]
        return cycle.results

    def scrape(self):
        cycle = self.connect()
        try:
            self.run_scrape_tasks(cycle)
        finally:
            cycle.close()
        cycle.duration = time.time() - cycle.started
        return cycle

    def _publish(self, cycle):
        cycle.transition(CollectorState.REPORTING)
        identity = cycle.identity
        families = self.families
        families.reset_gauges()
        families.set(Family.UP, identity, (), 1 if cycle.up else 0)
        for result in cycle.results:
            for labels, value in result.samples:
                families.set(result.family, identity, labels, value)
        families.set(Family.LAST_SCRAPE_DURATION, identity, (), cycle.duration)
        families.inc(Family.SCRAPES_TOTAL, identity)
        families.inc(Family.SCRAPE_ERRORS_TOTAL, identity, 1 if cycle.failed else 0)
        families.set(Family.LAST_SCRAPE_ERROR, identity, (), 1 if cycle.failed else 0)

    def collect(self):
        cycle = self.scrape()
        with self._lock:
            self._publish(cycle)
            snapshot = self.families.collect()
            self.last_cycle = cycle
        cycle.transition(CollectorState.IDLE)

        if cycle.failed:
            logging.warning(f"Scrape of '{self.target.connection}' had {len(cycle.errors)} error(s): "
                            f"{[str(e) for e in cycle.errors]}")
        logging.info(f"Scrape of '{self.target.connection}' completed in {cycle.duration:.3f} seconds")
        return snapshot

    def describe(self):
        return self.families.describe()
