# src/ekiden_client/exceptions.py

class EkidenError(Exception):
    """Base exception for all Ekiden client errors."""
    pass

class APIError(EkidenError):
    """Raised when the REST API answers with a non-success status."""
    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"API error: {status} - {message}")

class AuthError(EkidenError):
    """Raised when authentication fails or a signed call is made without a token or key pair."""
    pass

class RateLimitError(EkidenError):
    """Raised when API rate limits are exceeded."""
    pass

class ServiceUnavailableError(EkidenError):
    """Raised when the API is unreachable, times out or answers with a 5xx."""
    pass

class ConfigError(EkidenError):
    pass

class ValidationError(EkidenError):
    """Raised when an address, public key or signature is malformed."""
    pass

class CryptoError(EkidenError):
    pass

class SerializationError(EkidenError):
    """Raised when inbound or outbound JSON cannot be encoded or decoded."""
    pass

class WebSocketError(EkidenError):
    """Base exception for the websocket multiplexer."""
    pass

class TransportError(WebSocketError):
    """Raised when the websocket handshake or a frame send fails."""
    pass

class NotConnectedError(WebSocketError):
    """Raised when an operation needs an open transport and there is none."""
    pass

class AlreadyConnectedError(WebSocketError):
    """Raised when connect() is called while connecting or connected."""
    pass

class ConnectionClosed(WebSocketError):
    """Raised by a receiver once its channel is gone; no further events will arrive."""
    def __init__(self, channel: str | None = None):
        self.channel = channel
        message = f"Event stream for '{channel}' is closed." if channel else "Event stream is closed."
        super().__init__(message)

class Lagged(WebSocketError):
    """Raised by a receiver that fell behind the buffer; later receives may still succeed."""
    def __init__(self, skipped: int, channel: str | None = None):
        self.skipped = skipped
        self.channel = channel
        target = f" on '{channel}'" if channel else ""
        super().__init__(f"Event stream lagged{target}: {skipped} events missed.")
