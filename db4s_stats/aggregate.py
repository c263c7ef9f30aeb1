# Standard libraries
from collections import defaultdict, namedtuple

# Installed packages
import duckdb

from .errors import QueryFault
from .parse import AGENT_LIKE, CRAWLER_LIKE, MARKER_REQUEST, parse_client_rows

BATCH_SIZE = 10000

UserStats = namedtuple("UserStats", ['total', 'per_version'])
DownloadStats = namedtuple("DownloadStats", ['total', 'per_artifact'])


def count_unique_clients(pairs):
    """
    Count distinct client identities overall and per version label from
    (label, identity) pairs.  A client checking for updates several times in
    the window counts once, both in the total and for its version.
    """
    everyone = set()
    by_version = defaultdict(set)
    for label, identity in pairs:
        everyone.add(identity)
        by_version[label].add(identity)
    return UserStats(len(everyone), {label: len(ids) for label, ids in by_version.items()})


def count_downloads(catalog, path_counts):
    """
    Fold per-path download counts into per-artifact counts.  Every artifact
    in the catalog gets an entry, and the total is their sum.
    """
    per_artifact = {artifact.id: 0 for artifact in catalog}
    for path, count in path_counts:
        artifact_id = catalog.artifact_by_path.get(path)
        if artifact_id is not None:
            per_artifact[artifact_id] += count
    return DownloadStats(sum(per_artifact.values()), per_artifact)


class Aggregator:
    def __init__(self, conn, catalog, batch_size=BATCH_SIZE):
        self.conn = conn
        self.catalog = catalog
        self.batch_size = batch_size

    def _client_rows(self, start, end):
        try:
            cursor = self.conn.execute('''SELECT http_user_agent, client_ipv4, client_ipv6, client_ip_strange
                                          FROM download_log
                                          WHERE request = ?
                                            AND http_user_agent LIKE ?
                                            AND http_user_agent NOT LIKE ?
                                            AND status = 200
                                            AND request_time >= ?
                                            AND request_time < ?''',
                                       [MARKER_REQUEST, AGENT_LIKE, CRAWLER_LIKE, start, end])
            while True:
                rows = cursor.fetchmany(self.batch_size)
                if not rows:
                    break
                yield from rows
        except duckdb.Error as e:
            raise QueryFault("Retrieving version checks for {} failed: {}".format(start, e)) from e

    def compute_user_stats(self, start, end):
        return count_unique_clients(parse_client_rows(self._client_rows(start, end)))

    def compute_download_stats(self, start, end):
        paths = self.catalog.paths
        if not paths:
            return count_downloads(self.catalog, [])
        placeholders = ", ".join("?" for _ in paths)
        try:
            path_counts = self.conn.execute('''SELECT request, count(1)
                                               FROM download_log
                                               WHERE status = 200
                                                 AND request_time >= ?
                                                 AND request_time < ?
                                                 AND request IN ({})
                                               GROUP BY request'''.format(placeholders),
                                            [start, end] + paths).fetchall()
        except duckdb.Error as e:
            raise QueryFault("Counting downloads for {} failed: {}".format(start, e)) from e
        return count_downloads(self.catalog, path_counts)
