"""Metric family table for one Oracle target.

Every family is declared once in ``Family``; ``MetricFamilies`` builds one
prometheus_client metric per member and iterates the table for describe and
collect, so adding a family is a new enum member and nothing else.
"""
import enum
from dataclasses import dataclass

from prometheus_client import Counter, Gauge


NAMESPACE = "oracledb"
EXPORTER_SUBSYSTEM = "exporter"
IDENTITY_LABELS = ("database", "instance")


@dataclass(frozen=True)
class FamilySpec:
    name: str
    documentation: str
    labels: tuple = ()
    kind: str = "gauge"
    subsystem: str = ""

    @property
    def labelnames(self):
        return IDENTITY_LABELS + self.labels


class Family(enum.Enum):
    UP = FamilySpec("up", "Whether the Oracle server is up.")
    UPTIME = FamilySpec("uptime", "Gauge metric with uptime in days of the Instance.")
    SESSION = FamilySpec("session", "Gauge metric user/system active/passive sessions (v$session).", ("type", "state"))
    SYSSTAT = FamilySpec("sysstat", "Gauge metric with commits/rollbacks/parses (v$sysstat).", ("type",))
    WAITCLASS = FamilySpec("waitclass", "Gauge metric with Waitevents (v$waitclassmetric).", ("type",))
    SYSMETRIC = FamilySpec("sysmetric", "Gauge metric with read/write pysical IOPs/bytes (v$sysmetric).", ("type",))
    TABLESPACE = FamilySpec(
        "tablespace", "Gauge metric with total/free size of the Tablespaces.",
        ("type", "name", "contents", "autoextend"))
    INTERCONNECT = FamilySpec("interconnect", "Gauge metric with interconnect block transfers (v$sysstat).", ("type",))
    RECOVERY = FamilySpec("recovery", "Gauge metric with percentage usage of FRA (v$recovery_file_dest).", ("type",))
    REDO = FamilySpec("redo", "Gauge metric with Redo log switches over last 5 min (v$log_history).")
    CACHE = FamilySpec("cachehitratio", "Gauge metric witch Cache hit ratios (v$sysmetric).", ("type",))
    SERVICES = FamilySpec("services", "Active Oracle Services (v$active_services).", ("name",))
    PARAMETER = FamilySpec("parameter", "oracle Configuration Parameters (v$parameter).", ("name",))
    QUERY = FamilySpec("query", "Self defined Queries from Configuration File.", ("name",))
    ASMSPACE = FamilySpec("asmspace", "Gauge metric with total/free size of the ASM Diskgroups.", ("type", "name"))

    LAST_SCRAPE_DURATION = FamilySpec(
        "last_scrape_duration_seconds", "Duration of the last scrape of metrics from Oracle DB.",
        subsystem=EXPORTER_SUBSYSTEM)
    SCRAPES_TOTAL = FamilySpec(
        "scrapes_total", "Total number of times Oracle DB was scraped for metrics.",
        kind="counter", subsystem=EXPORTER_SUBSYSTEM)
    SCRAPE_ERRORS_TOTAL = FamilySpec(
        "scrape_errors_total", "Total number of times an error occured scraping a Oracle database.",
        kind="counter", subsystem=EXPORTER_SUBSYSTEM)
    LAST_SCRAPE_ERROR = FamilySpec(
        "last_scrape_error",
        "Whether the last scrape of metrics from Oracle DB resulted in an error (1 for error, 0 for success).",
        subsystem=EXPORTER_SUBSYSTEM)

    @property
    def spec(self):
        return self.value


_METRIC_TYPES = {"gauge": Gauge, "counter": Counter}


def _build(spec):
    metric_type = _METRIC_TYPES[spec.kind]
    # registry=None keeps the family out of the process-global default registry
    return metric_type(
        spec.name,
        spec.documentation,
        labelnames=spec.labelnames,
        namespace=NAMESPACE,
        subsystem=spec.subsystem,
        registry=None,
    )


class MetricFamilies:
    """One prometheus_client metric per Family member, in enum order."""

    def __init__(self):
        self._handles = {family: _build(family.spec) for family in Family}

    def __getitem__(self, family):
        return self._handles[family]

    def reset_gauges(self):
        """Drop every gauge series so a scrape only exposes what it produced. Counters are kept."""
        for family, handle in self._handles.items():
            if family.spec.kind == "gauge":
                handle.clear()

    def set(self, family, identity, labels, value):
        self._handles[family].labels(*identity, *labels).set(value)

    def inc(self, family, identity, amount=1):
        self._handles[family].labels(*identity).inc(amount)

    def describe(self):
        descriptors = []
        for handle in self._handles.values():
            descriptors.extend(handle.describe())
        return descriptors

    def collect(self):
        families = []
        for handle in self._handles.values():
            families.extend(handle.collect())
        return families
