from datetime import datetime

import duckdb
import pytest

from db4s_stats.catalog import DownloadArtifact, DownloadCatalog
from db4s_stats.schema import ensure_schema, sync_catalog

D0 = datetime(2024, 3, 5)


@pytest.fixture
def conn():
    conn = duckdb.connect(":memory:")
    ensure_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def catalog():
    return DownloadCatalog([
        DownloadArtifact(2, "DB4S 3.12.0 win64.msi", ("/DB.Browser.for.SQLite-3.12.0-win64.msi",)),
        DownloadArtifact(3, "DB4S 3.12.0 macOS", ("/DB.Browser.for.SQLite-3.12.0.dmg",
                                                  "/DB.Browser.for.SQLite-3.12.0v2.dmg")),
        DownloadArtifact(4, "DB4S 3.12.0 Portable", ("/SQLiteDatabaseBrowserPortable_3.12.0_English.paf.exe",)),
    ])


@pytest.fixture
def synced(conn, catalog):
    sync_catalog(conn, catalog)
    return conn


def add_log(conn, request, when, agent=None, ipv4=None, ipv6=None, strange=None, status=200):
    conn.execute('''INSERT INTO download_log
                      (request, http_user_agent, client_ipv4, client_ipv6, client_ip_strange, request_time, status)
                    VALUES (?, ?, ?, ?, ?, ?, ?)''',
                 [request, agent, ipv4, ipv6, strange, when, status])


def add_version_check(conn, agent, when, **kwargs):
    add_log(conn, "/currentrelease", when, agent=agent, **kwargs)
