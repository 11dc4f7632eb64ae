"""Error hierarchy for the shadow-mask renderer.

All rendering failures are fatal for the run; nothing here is retried.

    ShadowMaskError
    ├── ConfigurationError   unknown mask type, invalid config file
    └── GeometryError        output too narrow, beam step rounds to zero

I/O failures are raised as ``src.utils.fs.ImageIOError`` (an ``OSError``)
because the utils layer cannot import from this package.
"""


class ShadowMaskError(Exception):
    """Base class for renderer errors."""


class ConfigurationError(ShadowMaskError, ValueError):
    """Invalid renderer configuration (e.g. unknown mask type tag)."""


class GeometryError(ShadowMaskError, ValueError):
    """Input/output dimensions that cannot produce a valid render."""
