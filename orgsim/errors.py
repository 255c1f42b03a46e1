"""Exception taxonomy for the simulation kernel.

Contract violations raise; simulation outcomes (no peers, retries
exhausted, database miss) are policy branches and never raise.
"""


class OrgSimError(Exception):
    """Base class for all orgsim errors."""
    pass


class InvalidArgumentError(OrgSimError, ValueError):
    """A required argument (task, blocker, message, collaborator) is missing or invalid."""
    pass


class NotFoundError(OrgSimError, KeyError):
    """An entity the caller relies on does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "not found"
