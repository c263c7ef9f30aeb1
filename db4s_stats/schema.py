# Standard libraries
from collections import namedtuple

from .buckets import GRANULARITIES
from .catalog import TOTAL_ID

USERS = 'users'
DOWNLOADS = 'downloads'
KINDS = (USERS, DOWNLOADS)

RollupTable = namedtuple("RollupTable", ['name', 'category_column', 'count_column'])

# Where the category ids of each report family are defined
REFERENCE_TABLES = {
    USERS: ('db4s_release_info', 'release_id', 'version_number'),
    DOWNLOADS: ('db4s_download_info', 'download_id', 'download_id'),
}

_COLUMNS = {
    USERS: ('db4s_release', 'unique_ips'),
    DOWNLOADS: ('db4s_download', 'num_downloads'),
}


def rollup_table(kind, granularity):
    if kind not in _COLUMNS or granularity not in GRANULARITIES:
        raise ValueError("Unknown report: {} {}".format(granularity, kind))
    category_column, count_column = _COLUMNS[kind]
    return RollupTable("db4s_{}_{}".format(kind, granularity), category_column, count_column)


def ensure_schema(conn):
    """
    Create whatever tables are missing.  The log table is normally filled by
    the web server's log shipping; it is declared here with just the columns
    the statistics read.
    """
    conn.execute('''CREATE TABLE IF NOT EXISTS download_log
                      ( request TEXT
                      , http_user_agent TEXT
                      , client_ipv4 TEXT
                      , client_ipv6 TEXT
                      , client_ip_strange TEXT
                      , request_time TIMESTAMP NOT NULL
                      , status INTEGER)''')

    # Id 1 is the "all versions" row, so handed out ids start at 2
    conn.execute('''CREATE SEQUENCE IF NOT EXISTS db4s_release_info_release_id_seq START 2''')
    conn.execute('''CREATE TABLE IF NOT EXISTS db4s_release_info
                      ( release_id INTEGER PRIMARY KEY DEFAULT nextval('db4s_release_info_release_id_seq')
                      , version_number TEXT UNIQUE
                      , friendly_name TEXT)''')
    conn.execute('''CREATE TABLE IF NOT EXISTS db4s_download_info
                      ( download_id INTEGER PRIMARY KEY
                      , friendly_name TEXT)''')

    for kind in KINDS:
        for granularity in GRANULARITIES:
            table = rollup_table(kind, granularity)
            conn.execute('''CREATE TABLE IF NOT EXISTS {0.name}
                              ( stats_date TIMESTAMP NOT NULL
                              , {0.category_column} INTEGER NOT NULL
                              , {0.count_column} INTEGER NOT NULL
                              , PRIMARY KEY (stats_date, {0.category_column}))'''.format(table))

    # The aggregate row has no version number, so no client label can match it
    conn.execute('''INSERT INTO db4s_release_info (release_id, version_number, friendly_name)
                    VALUES (?, NULL, 'Unique IPs')
                    ON CONFLICT (release_id) DO NOTHING''', [TOTAL_ID])
    conn.execute('''INSERT INTO db4s_download_info (download_id, friendly_name)
                    VALUES (?, 'Total downloads')
                    ON CONFLICT (download_id) DO NOTHING''', [TOTAL_ID])
    conn.commit()


def sync_catalog(conn, catalog):
    "Make sure every artifact of the download catalog has its reference row."
    if not len(catalog):
        return
    conn.executemany('''INSERT INTO db4s_download_info (download_id, friendly_name)
                        VALUES (?, ?)
                        ON CONFLICT (download_id) DO UPDATE SET friendly_name = excluded.friendly_name''',
                     [(a.id, a.name) for a in catalog])
    conn.commit()
