"""
errors.py — Exception taxonomy for the XP graph service.

Every error carries the HTTP status the server answers with, so routes can
just raise and let the single exception handler in server.py respond.

Per-point evaluation faults are NOT represented here: they never leave the
point sampler (see sampler.UNDEFINED).
"""

from typing import Optional


class XpGraphError(Exception):
    """Base class; anything unexpected is a server-side fault."""

    status_code = 500


class ClientInputError(XpGraphError):
    """The caller sent something we cannot work with."""

    status_code = 400


class FormulaCompileError(ClientInputError):
    """Formula source did not parse, failed validation, or is not callable."""

    def __init__(self, message: str, index: Optional[int] = None, name: Optional[str] = None):
        super().__init__(message)
        self.index = index
        self.name = name


class MissingParameterError(ClientInputError):
    pass


class RequestLimitError(ClientInputError):
    """Domain too large, too many formulas, or a formula that is too long."""

    status_code = 413


class FormulaLimitError(ClientInputError):
    """Formula ran out of time or memory in the sandbox process."""

    status_code = 422

    def __init__(self, message: str, index: Optional[int] = None, name: Optional[str] = None):
        super().__init__(message)
        self.index = index
        self.name = name


class RenderError(XpGraphError):
    """Chart backend failed; reported as a bad gateway."""

    status_code = 502
