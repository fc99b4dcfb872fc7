class MinerWatchError(Exception):
    """Base class for agent errors."""


class TailError(MinerWatchError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class TailAttachError(TailError):
    """The log file could not be opened for tailing."""


class TailReadError(TailError):
    """The log file broke while it was being followed."""


class PublishError(MinerWatchError):
    def __init__(self, metric: str, reason: str):
        super().__init__(f"push of {metric} failed: {reason}")
        self.metric = metric
        self.reason = reason


class ConfigError(ValueError):
    pass
