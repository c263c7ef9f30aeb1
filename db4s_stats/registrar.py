# Installed packages
import duckdb

from .errors import QueryFault, WriteFault
from .parse import AGENT_LIKE, CRAWLER_LIKE, MARKER_REQUEST, parse_version


class VersionRegistrar:
    """
    Gives every client version seen in the log a row in db4s_release_info,
    so the user statistics can refer to it by release id.
    """
    def __init__(self, conn):
        self.conn = conn

    def seen_agents(self):
        try:
            rows = self.conn.execute('''SELECT DISTINCT http_user_agent
                                        FROM download_log
                                        WHERE request = ?
                                          AND http_user_agent LIKE ?
                                          AND http_user_agent NOT LIKE ?''',
                                     [MARKER_REQUEST, AGENT_LIKE, CRAWLER_LIKE]).fetchall()
        except duckdb.Error as e:
            raise QueryFault("Retrieving user agents failed: {}".format(e)) from e
        return sorted(agent for (agent,) in rows)

    def register(self, label):
        # A single conditional insert, an existing label keeps its release id
        try:
            self.conn.execute('''INSERT INTO db4s_release_info (version_number, friendly_name)
                                 VALUES (?, ?)
                                 ON CONFLICT (version_number) DO NOTHING''', [label, label])
        except duckdb.Error as e:
            raise WriteFault("Registering version {} failed: {}".format(label, e)) from e

    def ensure_versions_registered(self):
        labels = []
        for agent in self.seen_agents():
            label = parse_version(agent)
            if label is None:
                continue
            self.register(label)
            labels.append(label)
        self.conn.commit()
        return labels
