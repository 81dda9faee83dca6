"""Exception hierarchy for rendering, configuration, and request routing"""


class MdServeError(Exception):
    """Base exception for all mdserve errors."""


class ConfigurationError(MdServeError, ValueError):
    """Invalid option value or combination, raised at construction time."""


class MalformedFrontMatterStructural(MdServeError):
    """Front matter was opened but never closed."""


class RoutingError(MdServeError):
    """Serve-mode failure that maps onto an HTTP status."""
    status_code = 500


class PathForbidden(RoutingError):
    """Resolved path escapes the served root."""
    status_code = 403


class PathNotFound(RoutingError):
    """No Markdown file exists for the requested path."""
    status_code = 404


class IoFailure(RoutingError):
    """The file was located but could not be read."""
    status_code = 500
