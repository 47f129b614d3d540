"""
Custom exceptions for the document image tools.

Provides a hierarchy of exceptions for the error kinds that can occur
while validating parameters and processing images.
"""

from typing import Optional, Any


class ImageToolsError(Exception):
    """Base exception for all image tool errors."""
    
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} (Details: {details_str})"
        return self.message


class ConfigurationError(ImageToolsError):
    """Raised when there are configuration-related errors."""
    pass


class InvalidParameterError(ImageToolsError):
    """Raised when a numeric or enumerated argument is malformed or out of range."""
    
    def __init__(self, message: str, parameter: Optional[str] = None,
                 value: Any = None, **kwargs: Any) -> None:
        details = kwargs
        if parameter:
            details["parameter"] = parameter
        if value is not None:
            details["value"] = value
        super().__init__(message, details)
        self.parameter = parameter


class ArithmeticRangeError(InvalidParameterError):
    """Raised when a window size would overflow the integral accumulator."""
    pass


class ProcessingError(ImageToolsError):
    """Raised when image processing operations fail."""
    
    def __init__(self, message: str, processor: Optional[str] = None, 
                 image_path: Optional[str] = None, **kwargs: Any) -> None:
        details = kwargs
        if processor:
            details["processor"] = processor
        if image_path:
            details["image_path"] = image_path
        super().__init__(message, details)


class EmptyOrOversizedImageError(ProcessingError):
    """Raised when an image is empty or too large to pad for a window."""
    pass


class DegenerateMaskError(ProcessingError):
    """Raised when a mask leaves no source pixels to inpaint from."""
    pass


class ImageLoadError(ProcessingError):
    """Raised when an image cannot be loaded or is invalid."""
    pass


class ImageSaveError(ProcessingError):
    """Raised when an image cannot be saved."""
    pass
