"""Diagnostic queries run against every target, in scrape order.

A task is data: the SQL, the family it feeds, the number of columns each row
must carry and a decoder turning one row into ``(labels, value)`` samples.
``run_task`` never raises; failures come back on the ``TaskResult``.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from .database import run_query
from .errors import TaskQueryFailure
from .metrics import Family


def clean_name(s):
    """Oracle gives us some ugly names back. This cleans things up for Prometheus."""
    s = str(s).replace(" ", "_")
    for ch in "()/":
        s = s.replace(ch, "")
    return s.lower()


def _number(value):
    if value is None:
        raise ValueError("NULL value")
    return float(value)


@dataclass(frozen=True)
class ScrapeTask:
    name: str
    family: Family
    sql: str
    columns: int
    decode: object
    # Only the first row is read (single-value views such as v$instance).
    first_row_only: bool = False
    # Custom queries may select extra columns; only the first one is read.
    min_columns_only: bool = False


@dataclass
class TaskResult:
    task: str
    family: Family
    samples: list = field(default_factory=list)
    error: Optional[TaskQueryFailure] = None
    skipped: bool = False

    @property
    def ok(self):
        return self.error is None and not self.skipped


def _value_only(row):
    return [((), _number(row[0]))]


def _named_value(row):
    return [((clean_name(row[0]),), _number(row[1]))]


def _session(row):
    user, status, value = row
    return [((str(user), str(status)), _number(value))]


def _tablespace(row):
    name, contents, total, free, autoextend = row
    total, free = _number(total), _number(free)
    labels = (str(name), str(contents), str(autoextend))
    return [
        (("total",) + labels, total),
        (("free",) + labels, free),
        (("used",) + labels, total - free),
    ]


def _recovery(row):
    used, reclaimable = row
    return [
        (("percent_space_used",), _number(used)),
        (("percent_space_reclaimable",), _number(reclaimable)),
    ]


def _service(row):
    return [((clean_name(row[0]),), 1.0)]


def _asmspace(row):
    name, total, free = row
    total, free = _number(total), _number(free)
    return [
        (("total", str(name)), total),
        (("free", str(name)), free),
        (("used", str(name)), total - free),
    ]


UPTIME = ScrapeTask(
    "uptime", Family.UPTIME,
    "select sysdate-startup_time from v$instance",
    1, _value_only, first_row_only=True)

SESSION = ScrapeTask(
    "session", Family.SESSION,
    """SELECT decode(username,NULL,'SYSTEM','SYS','SYSTEM','USER'), status,count(*)
         FROM v$session
        GROUP BY decode(username,NULL,'SYSTEM','SYS','SYSTEM','USER'),status""",
    3, _session)

SYSSTAT = ScrapeTask(
    "sysstat", Family.SYSSTAT,
    "SELECT name, value FROM v$sysstat WHERE statistic# in (6,7,1084,1089)",
    2, _named_value)

WAITCLASS = ScrapeTask(
    "waitclass", Family.WAITCLASS,
    """SELECT n.wait_class, round(m.time_waited/m.INTSIZE_CSEC,3)
         FROM v$waitclassmetric m, v$system_wait_class n
        WHERE m.wait_class_id=n.wait_class_id and n.wait_class != 'Idle'""",
    2, _named_value)

SYSMETRIC = ScrapeTask(
    "sysmetric", Family.SYSMETRIC,
    "select metric_name,value from v$sysmetric where metric_id in (2092,2093,2124,2100)",
    2, _named_value)

TABLESPACE = ScrapeTask(
    "tablespace", Family.TABLESPACE,
    """WITH
         getsize AS (SELECT tablespace_name, autoextensible, SUM(bytes) tsize
                       FROM dba_data_files GROUP BY tablespace_name, autoextensible),
         getfree AS (SELECT tablespace_name, contents, SUM(blocks*block_size) tfree
                       FROM DBA_LMT_FREE_SPACE a, v$tablespace b, dba_tablespaces c
                      WHERE a.TABLESPACE_ID= b.ts# and b.name=c.tablespace_name
                      GROUP BY tablespace_name,contents)
       SELECT a.tablespace_name, b.contents, a.tsize, b.tfree, a.autoextensible autoextend
         FROM GETSIZE a, GETFREE b
        WHERE a.tablespace_name = b.tablespace_name
       UNION
       SELECT tablespace_name, 'TEMPORARY', sum(tablespace_size), sum(free_space), 'NO'
         FROM dba_temp_free_space
        GROUP BY tablespace_name""",
    5, _tablespace)

INTERCONNECT = ScrapeTask(
    "interconnect", Family.INTERCONNECT,
    """SELECT name, value
         FROM V$SYSSTAT
        WHERE name in ('gc cr blocks served','gc cr blocks flushed','gc cr blocks received')""",
    2, _named_value)

RECOVERY = ScrapeTask(
    "recovery", Family.RECOVERY,
    """SELECT sum(percent_space_used), sum(percent_space_reclaimable)
         FROM V$FLASH_RECOVERY_AREA_USAGE""",
    2, _recovery)

REDO = ScrapeTask(
    "redo", Family.REDO,
    "select count(*) from v$log_history where first_time > sysdate - 1/24/12",
    1, _value_only)

CACHE = ScrapeTask(
    "cachehitratio", Family.CACHE,
    # 2000 Buffer Cache, 2050 Cursor Cache, 2112 Library Cache, 2110 Row Cache
    """select metric_name,value
         from v$sysmetric
        where group_id=2 and metric_id in (2000,2050,2112,2110)""",
    2, _named_value)

SERVICES = ScrapeTask(
    "services", Family.SERVICES,
    "select name from v$active_services",
    1, _service)

PARAMETER = ScrapeTask(
    "parameter", Family.PARAMETER,
    # num 43 is 'sessions'
    "select name,value from v$parameter WHERE num=43",
    2, _named_value)

ASMSPACE = ScrapeTask(
    "asmspace", Family.ASMSPACE,
    """SELECT g.name, sum(d.total_mb), sum(d.free_mb)
         FROM v$asm_disk d, v$asm_diskgroup g
        WHERE d.group_number = g.group_number
          AND d.header_status = 'MEMBER'
        GROUP by g.name, g.group_number""",
    3, _asmspace)

BUILTIN_BEFORE_CUSTOM = (
    UPTIME, SESSION, SYSSTAT, WAITCLASS, SYSMETRIC, TABLESPACE,
    INTERCONNECT, RECOVERY, REDO, CACHE, SERVICES, PARAMETER,
)
BUILTIN_AFTER_CUSTOM = (ASMSPACE,)


def custom_query_task(query):
    def decode(row):
        return [((query.name,), _number(row[0]))]
    return ScrapeTask(f"query:{query.name}", Family.QUERY, query.sql, 1, decode, min_columns_only=True)


def build_tasks(target):
    """The full, ordered task list for one target: built-ins with its custom queries slotted in."""
    custom = tuple(custom_query_task(q) for q in target.queries)
    return BUILTIN_BEFORE_CUSTOM + custom + BUILTIN_AFTER_CUSTOM


def _check_columns(task, row):
    if task.min_columns_only:
        valid = len(row) >= task.columns
    else:
        valid = len(row) == task.columns
    if not valid:
        raise ValueError(f"expected {task.columns} column(s), got {len(row)}")


def run_task(task, conn):
    """Execute one task on conn. Rows decoded before a failure are kept on the result."""
    result = TaskResult(task=task.name, family=task.family)
    try:
        rows = run_query(conn, task.sql)
    except Exception as e:
        result.error = TaskQueryFailure(task.name, f"query failed: {e}")
        logging.warning(f"Scrape task '{task.name}' failed: {e}")
        return result

    if task.first_row_only:
        rows = rows[:1]
    for row in rows:
        try:
            _check_columns(task, row)
            result.samples.extend(task.decode(row))
        except (TypeError, ValueError) as e:
            result.error = TaskQueryFailure(task.name, f"cannot decode row {row!r}: {e}")
            logging.warning(f"Scrape task '{task.name}' aborted on row {row!r}: {e}")
            break
    return result


def skipped(task):
    return TaskResult(task=task.name, family=task.family, skipped=True)
