"""Exceptions raised by the tsquery client."""


class TSQueryError(Exception):
    """Base class for all client errors."""


class ClientConnectionError(TSQueryError, ConnectionError):
    """The client handle could not be created or is no longer connected."""


class QueryError(TSQueryError):
    """The server rejected the query (malformed, unauthorized, ...)."""


class StreamError(TSQueryError):
    """Reading the result stream failed part way through."""


class WriteError(TSQueryError):
    """The server rejected rows sent to it."""
