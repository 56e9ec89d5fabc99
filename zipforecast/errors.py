class ForecastError(RuntimeError):
    """Base class for errors a caller of ForecastService can observe."""


class AddressNotFound(ForecastError):
    """The address was blank, unknown, or too coarse (country/state level)."""


class UpstreamUnavailable(ForecastError):
    """The geocoder, weather provider or cache backend could not serve the request."""


class CollaboratorError(RuntimeError):
    """Base class for adapter-level failures. Never escapes ForecastService."""


class ResolverUnavailable(CollaboratorError):
    pass


class ProviderUnavailable(CollaboratorError):
    pass


class CacheUnavailable(CollaboratorError):
    pass
