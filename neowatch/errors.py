"""Error taxonomy shared by the NeoWatch pipeline."""


class NeoWatchError(Exception):
    """Base class for pipeline errors."""


class TransientExternalError(NeoWatchError):
    """Raised when the NeoWs feed or the broker is unreachable or times out."""


class DataQualityError(NeoWatchError):
    """Raised when upstream or wire data is malformed or incomplete."""


class PersistenceError(NeoWatchError):
    """Raised when the notification store cannot complete an operation."""


class DeliveryError(NeoWatchError):
    """Raised when a single email fails to send."""
