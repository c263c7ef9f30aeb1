# Standard libraries
import sys

# Installed packages
import duckdb

from .catalog import TOTAL_ID
from .errors import UnregisteredCategoryError, WriteFault
from .schema import REFERENCE_TABLES, rollup_table


class Upserter:
    """
    Stores aggregate counts, one row per (stats date, category).  Writes
    overwrite the count of an existing row, so processing the same bucket
    again leaves the tables unchanged.
    """
    def __init__(self, conn, warn=None):
        self.conn = conn
        self.warn = warn or _print_warning

    def category_id(self, kind, key):
        """
        Look up the reference id for a version label or download artifact id.
        The aggregate row is never a match, even in databases where it still
        carries a version number.
        """
        table, id_column, key_column = REFERENCE_TABLES[kind]
        try:
            row = self.conn.execute('SELECT {0} FROM {1} WHERE {2} = ? AND {0} <> ?'.format(
                                        id_column, table, key_column),
                                    [key, TOTAL_ID]).fetchone()
        except duckdb.Error as e:
            raise WriteFault("Looking up {} in {} failed: {}".format(key, table, e)) from e
        if row is None:
            raise UnregisteredCategoryError(table, key)
        return row[0]

    def upsert(self, table, date, category, count):
        sql = '''INSERT INTO {0.name} (stats_date, {0.category_column}, {0.count_column})
                 VALUES (?, ?, ?)
                 ON CONFLICT (stats_date, {0.category_column})
                 DO UPDATE SET {0.count_column} = excluded.{0.count_column}'''.format(table)
        try:
            (changed,) = self.conn.execute(sql, [date, category, count]).fetchone()
        except duckdb.Error as e:
            raise WriteFault("Saving {} for {} (category {}) failed: {}".format(
                table.name, date, category, e)) from e
        if changed != 1:
            self.warn("Wrong number of rows ({}) affected when saving {} for {} (category {})".format(
                changed, table.name, date, category))
        return changed

    def save_stats(self, granularity, kind, date, total, per_category):
        table = rollup_table(kind, granularity)
        # Resolve every category first, so an unknown one writes nothing
        rows = [(TOTAL_ID, total)]
        rows.extend((self.category_id(kind, key), count)
                    for key, count in sorted(per_category.items()))
        for category, count in rows:
            self.upsert(table, date, category, count)
        return len(rows)


def _print_warning(message):
    print("Warning: {}".format(message), file=sys.stderr)
