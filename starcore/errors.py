"""Exception hierarchy for starcore.

Format errors are fatal: the enclosing load or lookup is aborted.
Absence (missing key, missing path) is never an exception, readers return None.
"""


class StarcoreError(Exception):
    """Base exception for all starcore failures."""


class StarcoreConfigError(StarcoreError):
    """Raised for an unreadable or invalid config.json."""


class FormatError(StarcoreError):
    """Raised when bytes violate the on-disk format."""


class SbonFormatError(FormatError):
    """Raised for malformed SBON / SBVJ01 data."""


class BTreeFormatError(FormatError):
    """Raised for a malformed BTreeDB5 header or block structure."""


class AssetArchiveError(FormatError):
    """Raised for a malformed SBAsset6 archive or a bad directory lookup."""


class WorldFormatError(FormatError):
    """Raised when a world file does not hold the expected layers."""


class SbonTypeError(StarcoreError, TypeError):
    """Raised when an SBON accessor does not match the value's type."""
