class GlideNodeError(Exception):
    """Base class for errors raised by the Glide node."""


class ValidationError(GlideNodeError):
    """Missing or invalid node parameter."""


class NotFound(GlideNodeError):
    """Table or row absent from the remote service."""


class UnsupportedOperation(GlideNodeError):
    """Declared-but-unimplemented operation, or a resource/operation pair with no handler."""


class UpstreamError(GlideNodeError):
    """Failure reported by the remote service; the message is passed through."""
