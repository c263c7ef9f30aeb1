# Standard libraries
from collections import namedtuple
import json
import os

from .errors import CatalogError

# Category id of the "all downloads" row, shared with the "all versions" row
TOTAL_ID = 1

CATALOG_FILE = os.path.join(os.path.dirname(__file__), "downloads.json")

DownloadArtifact = namedtuple("DownloadArtifact", ['id', 'name', 'paths'])


class DownloadCatalog:
    """
    The release files tracked in the download statistics.  One artifact can
    be reachable through several request paths, e.g. a rebuilt installer
    uploaded under a second file name.
    """
    def __init__(self, artifacts):
        self.artifacts = list(artifacts)
        self.artifact_by_path = {}
        seen_ids = set()
        for artifact in self.artifacts:
            if artifact.id == TOTAL_ID:
                raise CatalogError("Artifact id {} is reserved for the total".format(TOTAL_ID))
            if artifact.id in seen_ids:
                raise CatalogError("Duplicate artifact id {}".format(artifact.id))
            if not artifact.paths:
                raise CatalogError("Artifact {} has no request paths".format(artifact.id))
            seen_ids.add(artifact.id)
            for path in artifact.paths:
                if path in self.artifact_by_path:
                    raise CatalogError("Request path {} listed twice".format(path))
                self.artifact_by_path[path] = artifact.id

    @property
    def paths(self):
        return list(self.artifact_by_path)

    def __iter__(self):
        return iter(self.artifacts)

    def __len__(self):
        return len(self.artifacts)


def load_catalog(filename=None):
    filename = filename or CATALOG_FILE
    with open(filename, 'r') as f:
        try:
            entries = json.load(f)
        except ValueError as e:
            raise CatalogError("Bad catalog file {}: {}".format(filename, e))
    try:
        artifacts = [DownloadArtifact(int(e["id"]), e["name"], _paths(e["paths"]))
                     for e in entries]
    except (KeyError, TypeError, ValueError) as e:
        raise CatalogError("Bad catalog entry: {}".format(e))
    return DownloadCatalog(artifacts)


def _paths(value):
    if isinstance(value, str):
        return (value,)
    return tuple(value)
