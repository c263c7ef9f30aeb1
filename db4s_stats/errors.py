class StatsError(Exception):
    """Base class for every fault that stops a statistics run."""


class ConfigError(StatsError):
    pass


class CatalogError(StatsError):
    pass


class IntegrityFault(StatsError):
    """A qualifying log row carries no usable client address."""


class QueryFault(StatsError):
    pass


class WriteFault(StatsError):
    pass


class UnregisteredCategoryError(WriteFault):
    def __init__(self, table, key):
        self.table = table
        self.key = key
        super().__init__("No {0} entry for {1!r}".format(table, key))
