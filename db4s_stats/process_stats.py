# Standard libraries
import argparse
from contextlib import contextmanager
from datetime import datetime, timezone
from timeit import default_timer as timer
import sys

# Installed packages
import duckdb

from .aggregate import Aggregator
from .buckets import GRANULARITIES, iter_buckets
from .catalog import load_catalog
from .config import load_settings
from .errors import StatsError
from .registrar import VersionRegistrar
from .schema import KINDS, USERS, ensure_schema, sync_catalog
from .upsert import Upserter


def utcnow():
    # The log stores naive UTC timestamps
    return datetime.now(timezone.utc).replace(tzinfo=None)


class StatsRun:
    """
    One pass over all six reports.  Everything the components need is
    handed in here, nothing is kept in module globals.
    """
    def __init__(self, conn, settings, catalog, out=None):
        self.conn = conn
        self.settings = settings
        self.catalog = catalog
        self.out = out or sys.stdout
        self.registrar = VersionRegistrar(conn)
        self.aggregator = Aggregator(conn, catalog)
        self.upserter = Upserter(conn)

    def say(self, message):
        if self.settings.stats.verbose:
            print(message, file=self.out)

    @contextmanager
    def phase(self, name):
        self.say(name)
        start = timer()
        yield
        self.say("-> Done in {:.2f}s".format(timer() - start))

    def aggregate(self, kind, bucket):
        if kind == USERS:
            return self.aggregator.compute_user_stats(bucket.start, bucket.end)
        return self.aggregator.compute_download_stats(bucket.start, bucket.end)

    def run_report(self, kind, granularity, now):
        buckets = 0
        for bucket in iter_buckets(granularity, self.settings.epoch(kind), now,
                                   incremental=self.settings.stats.incremental):
            total, per_category = self.aggregate(kind, bucket)
            self.conn.begin()
            try:
                self.upserter.save_stats(granularity, kind, bucket.start, total, per_category)
            except BaseException:
                self.conn.rollback()
                raise
            self.conn.commit()
            self.say("   {} {} {:%Y-%m-%d}: {}".format(granularity, kind, bucket.start, total))
            buckets += 1
        return buckets

    def run(self, now=None):
        now = now or utcnow()
        with self.phase("Ensuring database setup"):
            ensure_schema(self.conn)
            sync_catalog(self.conn, self.catalog)
        with self.phase("Registering client versions"):
            self.registrar.ensure_versions_registered()
        for kind in KINDS:
            for granularity in GRANULARITIES:
                with self.phase("Processing {} {}".format(granularity, kind)):
                    self.run_report(kind, granularity, now)


def main(argv=None):
    """main function"""

    parser = argparse.ArgumentParser(description='DB4S usage and download statistics generator')
    parser.add_argument('--config', help='Config file (default: $CONFIG_FILE or ~/.db4s/daily_stats_gen.toml)')
    parser.add_argument('--db', help='Database file (default: db4s_stats.db)')
    parser.add_argument('--catalog', help='Download catalog JSON file (default: bundled catalog)')
    parser.add_argument('--incremental', action='store_true', default=None,
                        help='Only refresh the previous and current period of each report')
    parser.add_argument('--verbose', '-v', action='store_true', default=None,
                        help='Print progress for every bucket')
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config, db=args.db, catalog=args.catalog,
                                 incremental=args.incremental, verbose=args.verbose)
        catalog = load_catalog(settings.stats.catalog)
        conn = duckdb.connect(str(settings.database.path))
    except (StatsError, OSError, duckdb.Error) as e:
        print("Error: {}".format(e), file=sys.stderr)
        return 1

    try:
        StatsRun(conn, settings, catalog).run()
    except (StatsError, duckdb.Error) as e:
        print("Error: {}".format(e), file=sys.stderr)
        return 1
    finally:
        conn.close()

    return 0


if __name__ == '__main__':
    sys.exit(main())
