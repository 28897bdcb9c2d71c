"""Batch raster image format conversion."""

__version__ = "0.1.0"

from .config import AppConfig, load_config
from .core import BatchError, ConversionError, ConversionService
from .formats import ImageFormat, is_supported_extension, supported_formats
from .models import BatchResult, ConversionJob, ConversionOptions, ConversionResult

__all__ = [
    "AppConfig",
    "BatchError",
    "BatchResult",
    "ConversionError",
    "ConversionJob",
    "ConversionOptions",
    "ConversionResult",
    "ConversionService",
    "ImageFormat",
    "is_supported_extension",
    "load_config",
    "supported_formats",
]
