from __future__ import annotations


class ConfigError(ValueError):
    pass


class InvalidLayout(ConfigError):
    pass


class InsufficientData(ValueError):
    pass


class MetadataUnavailable(LookupError):
    pass


class OutputCollision(FileExistsError):
    pass
