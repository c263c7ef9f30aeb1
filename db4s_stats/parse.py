# Standard libraries
import hashlib

from .errors import IntegrityFault

# The desktop client asks for this path on startup to check for new releases
MARKER_REQUEST = '/currentrelease'
AGENT_PREFIX = 'sqlitebrowser '
CRAWLER_MARKER = 'AppEngine'

AGENT_LIKE = AGENT_PREFIX + '%'
CRAWLER_LIKE = '%' + CRAWLER_MARKER + '%'


def parse_version(agent):
    "Return the version label of a client user agent, or None for other agents."
    if not agent or not agent.startswith(AGENT_PREFIX) or CRAWLER_MARKER in agent:
        return None
    return agent[len(AGENT_PREFIX):]


def client_identity(ipv4, ipv6, ip_strange):
    """
    Hash whichever address field is set, preferring the non-conforming field,
    then IPv6, then IPv4.  Hashing keeps odd characters in the "strange" field
    out of the dedup keys.
    """
    for addr in (ip_strange, ipv6, ipv4):
        if addr is not None:
            return hashlib.md5(addr.encode('utf-8')).digest()
    raise IntegrityFault("No non-NULL client IP field for one of the log rows")


def parse_client_rows(rows):
    """
    Turn (user agent, ipv4, ipv6, ip strange) rows into (label, identity)
    pairs.  Agents that don't belong to the desktop client are skipped.
    """
    for agent, ipv4, ipv6, ip_strange in rows:
        label = parse_version(agent)
        if label is None:
            continue
        yield label, client_identity(ipv4, ipv6, ip_strange)
