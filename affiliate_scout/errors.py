class ScoutError(Exception):
    """Base class for failures reported back to the caller as an embedded error."""


class ConfigurationError(ScoutError):
    pass


class ValidationError(ScoutError):
    pass


class AuthenticationError(ScoutError):
    pass


class ListingUnavailable(ScoutError):
    pass


class ExtractionTimeout(ScoutError):
    """Raised for a single item; callers record a null link and move on."""
