# Standard libraries
from collections import namedtuple
from datetime import datetime, timedelta

# Installed packages
from dateutil.relativedelta import relativedelta

DAILY = 'daily'
WEEKLY = 'weekly'
MONTHLY = 'monthly'
GRANULARITIES = (DAILY, WEEKLY, MONTHLY)

Bucket = namedtuple("Bucket", ['start', 'end'])


def _midnight(moment):
    return datetime(moment.year, moment.month, moment.day)


def period_start(granularity, moment):
    "Start of the daily, ISO-weekly or calendar-monthly period holding `moment`."
    day = _midnight(moment)
    match granularity:
        case 'daily':
            return day
        case 'weekly':
            return day - timedelta(days=day.weekday())
        case 'monthly':
            return day.replace(day=1)
        case _:
            raise ValueError("Unknown granularity: {}".format(granularity))


def next_boundary(granularity, start):
    match granularity:
        case 'daily':
            return start + timedelta(days=1)
        case 'weekly':
            return start + timedelta(weeks=1)
        case 'monthly':
            # Calendar arithmetic, months are 28 to 31 days long
            return start + relativedelta(months=1)
        case _:
            raise ValueError("Unknown granularity: {}".format(granularity))


def previous_boundary(granularity, start):
    match granularity:
        case 'daily':
            return start - timedelta(days=1)
        case 'weekly':
            return start - timedelta(weeks=1)
        case 'monthly':
            return start - relativedelta(months=1)
        case _:
            raise ValueError("Unknown granularity: {}".format(granularity))


def iter_buckets(granularity, epoch, now, incremental=False):
    """
    Yield consecutive half-open Bucket(start, end) ranges for `granularity`.

    A full backfill starts at the period holding `epoch`.  Incremental mode
    starts one full period before the period holding `now`, so only the last
    completed period and the current partial one are produced.  Either way
    the sequence stops at the first bucket that would start after `now`.
    """
    start = period_start(granularity, epoch)
    if incremental:
        recent = previous_boundary(granularity, period_start(granularity, now))
        start = max(start, recent)

    while start < now:
        end = next_boundary(granularity, start)
        yield Bucket(start, end)
        start = end
