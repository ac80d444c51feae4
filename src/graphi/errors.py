"""
Error Taxonomy
==============
Exceptions raised by the layout engine and the data layer.

Why is this file needed?
------------------------
1. Data errors (bad records, dangling citations) must be told apart from
   numeric errors (NaN positions) because the shell reports them differently.
2. Interaction errors are never raised; stale gestures are simply discarded
   by the controllers, so there is no class for them here.
"""


class GraphiError(Exception):
    """Base class for all application errors."""


class DataError(GraphiError):
    """A dataset could not be read or failed validation. The simulation never starts."""


class ConfigError(GraphiError):
    """A configuration file or override is malformed."""


class NumericalInstabilityError(GraphiError):
    """
    A non-finite position or velocity appeared during integration.

    The run that produced it is halted and cannot be resumed.
    """

    def __init__(self, message: str, tick: int, node_ids: list[str]) -> None:
        super().__init__(message)
        self.tick = tick
        self.node_ids = node_ids
