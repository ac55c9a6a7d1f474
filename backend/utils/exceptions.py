"""Custom exceptions for the density map platform"""

class DensityMapException(Exception):
    """Base exception for the density map platform"""
    pass

class ConfigurationError(DensityMapException):
    """Raised when required configuration is missing or invalid"""
    pass

class ValidationError(DensityMapException):
    """Raised when request input validation fails"""
    pass

class PayloadValidationError(ValidationError):
    """Raised when an upstream payload does not have the expected shape"""
    pass

class DrawStateError(DensityMapException):
    """Raised when a draw command is not valid in the current state"""
    pass

class EngineError(DensityMapException):
    """Base class for failures talking to the search engine"""
    pass

class EngineConnectionError(EngineError):
    """Raised when the engine cannot be reached"""
    pass

class EngineUpstreamError(EngineError):
    """Raised when the engine answers with a non-OK status"""

    def __init__(self, status_code: int, details):
        super().__init__(f"Engine responded with status {status_code}")
        self.status_code = status_code
        self.details = details

class EngineResponseError(EngineError):
    """Raised when the engine body is not valid JSON"""
    pass

class MapApiError(DensityMapException):
    """Raised by the map API client when the proxy returns an error"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code

class MapViewClosedError(DensityMapException):
    """Raised by a map view that has been torn down"""
    pass
