"""Error types and the fixed messages shown to chat users."""

INVALID_INPUT_MESSAGE = 'Please enter a valid message.'
NETWORK_ERROR_MESSAGE = (
    "Sorry, I'm having trouble connecting to the server. Please try again later."
)
API_CONFIG_ERROR_MESSAGE = (
    'Error: An API configuration issue occurred. Please contact support.'
)
EMPTY_RESPONSE_MESSAGE = (
    'Sorry, I received an empty response. Please try a different query.'
)
TIMEOUT_MESSAGE = 'Request timed out. Please try again with a shorter query.'


class InvalidInputError(ValueError):
    """Query text is empty or not a string."""


class UpstreamUnavailableError(Exception):
    """Backend data fetch failed or returned an unusable payload."""


class GenerationError(Exception):
    """Base class for generation API failures."""

    user_message = NETWORK_ERROR_MESSAGE


class GenerationConfigError(GenerationError):
    """Generation API rejected the request (bad request or authorization)."""

    user_message = API_CONFIG_ERROR_MESSAGE


class GenerationEmptyResponse(GenerationError):
    """Generation API answered without usable text."""

    user_message = EMPTY_RESPONSE_MESSAGE


class GenerationTimeout(GenerationError):
    user_message = TIMEOUT_MESSAGE


class GenerationNetworkError(GenerationError):
    user_message = NETWORK_ERROR_MESSAGE


USER_MESSAGES = frozenset([
    NETWORK_ERROR_MESSAGE,
    API_CONFIG_ERROR_MESSAGE,
    EMPTY_RESPONSE_MESSAGE,
    TIMEOUT_MESSAGE,
])
