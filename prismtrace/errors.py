"""Exceptions raised by prismtrace.

Everything that can go wrong is caught before tracing starts, when a
camera, a render configuration or a scene description is built. The
trace itself has no failure paths apart from cancellation.
"""


class RenderConfigError(ValueError):
    """Base class for malformed render, camera or scene configuration."""
    pass


class CameraConfigError(RenderConfigError):
    """Invalid camera parameters."""
    pass


class RenderSettingsError(RenderConfigError):
    """Invalid render settings."""
    pass


class SceneParseError(RenderConfigError):
    """Error while building or parsing a scene description."""
    pass


class RenderCancelled(InterruptedError):
    """Raised when a trace is cancelled between tiles."""
    pass
