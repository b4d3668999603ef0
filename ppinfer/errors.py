from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error raised by ppinfer."""


class InputError(PipelineError):
    """An input file or an input value cannot be used."""


class UnreadableInputError(InputError, OSError):
    """An input pepXML file is missing or cannot be read."""


class UnknownEnzymeError(InputError, ValueError):
    """The enzyme code has no entry in the enzyme table."""


class WorkspaceError(PipelineError):
    """The scratch directory for a job cannot be created."""


class LaunchError(PipelineError):
    """An external executable could not be started."""


class StageFailure(PipelineError):
    """A stage ran but the expected artifact is not on disk."""
