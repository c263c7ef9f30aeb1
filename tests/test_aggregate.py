from datetime import timedelta

import pytest

from conftest import D0, add_log, add_version_check
from db4s_stats.aggregate import Aggregator, count_downloads, count_unique_clients
from db4s_stats.errors import IntegrityFault, QueryFault

HOUR = timedelta(hours=1)
DAY = timedelta(days=1)


def test_scenario_unique_clients_per_version(conn, catalog):
    add_version_check(conn, "sqlitebrowser 3.12.2", D0 + HOUR, ipv4="1.2.3.4")
    add_version_check(conn, "sqlitebrowser 3.12.2", D0 + 2 * HOUR, ipv4="1.2.3.4")
    add_version_check(conn, "sqlitebrowser 3.11.2", D0 + 3 * HOUR, ipv6="::1")

    stats = Aggregator(conn, catalog).compute_user_stats(D0, D0 + DAY)
    assert stats.total == 2
    assert stats.per_version == {"3.12.2": 1, "3.11.2": 1}


def test_same_client_on_two_versions_counts_once_overall(conn, catalog):
    add_version_check(conn, "sqlitebrowser 3.11.2", D0 + HOUR, ipv4="1.2.3.4")
    add_version_check(conn, "sqlitebrowser 3.12.2", D0 + 2 * HOUR, ipv4="1.2.3.4")

    stats = Aggregator(conn, catalog).compute_user_stats(D0, D0 + DAY)
    assert stats.total == 1
    assert stats.per_version == {"3.11.2": 1, "3.12.2": 1}


def test_user_stats_filters(conn, catalog):
    # Outside the window, on both edges
    add_version_check(conn, "sqlitebrowser 3.12.2", D0 - HOUR, ipv4="10.0.0.1")
    add_version_check(conn, "sqlitebrowser 3.12.2", D0 + DAY, ipv4="10.0.0.2")
    # Failed request, crawler, foreign agent, other path
    add_version_check(conn, "sqlitebrowser 3.12.2", D0 + HOUR, ipv4="10.0.0.3", status=404)
    add_version_check(conn, "sqlitebrowser 3.12.2 AppEngine-Google", D0 + HOUR, ipv4="10.0.0.4")
    add_version_check(conn, "Mozilla/5.0", D0 + HOUR, ipv4="10.0.0.5")
    add_log(conn, "/index.html", D0 + HOUR, agent="sqlitebrowser 3.12.2", ipv4="10.0.0.6")
    # Start of the window is included
    add_version_check(conn, "sqlitebrowser 3.12.2", D0, ipv4="10.0.0.7")

    stats = Aggregator(conn, catalog).compute_user_stats(D0, D0 + DAY)
    assert stats.total == 1
    assert stats.per_version == {"3.12.2": 1}


def test_identities_from_different_fields_are_distinct(conn, catalog):
    add_version_check(conn, "sqlitebrowser 3.12.2", D0 + HOUR, ipv4="1.2.3.4")
    add_version_check(conn, "sqlitebrowser 3.12.2", D0 + HOUR, strange="1.2.3.4 ")
    add_version_check(conn, "sqlitebrowser 3.12.2", D0 + HOUR, ipv4="9.9.9.9", strange="1.2.3.4 ")

    stats = Aggregator(conn, catalog).compute_user_stats(D0, D0 + DAY)
    assert stats.total == 2


def test_row_without_address_aborts(conn, catalog):
    add_version_check(conn, "sqlitebrowser 3.12.2", D0 + HOUR, ipv4="1.2.3.4")
    add_version_check(conn, "sqlitebrowser 3.12.2", D0 + HOUR)

    with pytest.raises(IntegrityFault):
        Aggregator(conn, catalog).compute_user_stats(D0, D0 + DAY)


def test_small_batches_give_the_same_answer(conn, catalog):
    for i in range(7):
        add_version_check(conn, "sqlitebrowser 3.12.2", D0 + HOUR, ipv4="10.0.0.{}".format(i % 5))

    stats = Aggregator(conn, catalog, batch_size=2).compute_user_stats(D0, D0 + DAY)
    assert stats.total == 5


def test_download_stats_total_is_sum_of_artifacts(conn, catalog):
    add_log(conn, "/DB.Browser.for.SQLite-3.12.0-win64.msi", D0 + HOUR, ipv4="1.1.1.1")
    add_log(conn, "/DB.Browser.for.SQLite-3.12.0-win64.msi", D0 + 2 * HOUR, ipv4="1.1.1.1")
    add_log(conn, "/DB.Browser.for.SQLite-3.12.0.dmg", D0 + HOUR, ipv4="2.2.2.2")
    add_log(conn, "/DB.Browser.for.SQLite-3.12.0v2.dmg", D0 + HOUR, ipv4="3.3.3.3")
    # Not counted: failed, outside window, unknown file
    add_log(conn, "/DB.Browser.for.SQLite-3.12.0.dmg", D0 + HOUR, ipv4="4.4.4.4", status=404)
    add_log(conn, "/DB.Browser.for.SQLite-3.12.0.dmg", D0 + DAY, ipv4="5.5.5.5")
    add_log(conn, "/DB.Browser.for.SQLite-9.9.9.dmg", D0 + HOUR, ipv4="6.6.6.6")

    stats = Aggregator(conn, catalog).compute_download_stats(D0, D0 + DAY)
    assert stats.per_artifact == {2: 2, 3: 2, 4: 0}
    assert stats.total == 4
    assert stats.total == sum(stats.per_artifact.values())


def test_count_unique_clients_empty():
    assert count_unique_clients([]) == (0, {})


def test_count_downloads_ignores_unknown_paths(catalog):
    stats = count_downloads(catalog, [("/nope", 10), ("/DB.Browser.for.SQLite-3.12.0.dmg", 3)])
    assert stats.total == 3
    assert stats.per_artifact[3] == 3


def test_broken_log_store_is_a_query_fault(conn, catalog):
    conn.execute("DROP TABLE download_log")
    aggregator = Aggregator(conn, catalog)

    with pytest.raises(QueryFault):
        aggregator.compute_user_stats(D0, D0 + DAY)
    with pytest.raises(QueryFault):
        aggregator.compute_download_stats(D0, D0 + DAY)
