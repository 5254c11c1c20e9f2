class PadAnalyzerError(Exception):
    """Base class for every error raised by the pad analysis pipeline."""


class ImageDecodeError(PadAnalyzerError):
    """The image source could not be read or decoded into an RGB raster."""


class UnsupportedSourceError(PadAnalyzerError):
    """The caller passed an image source of a kind the loader cannot handle."""


class InvalidConfigurationError(PadAnalyzerError):
    """A threshold, calibration or per-call option is out of range."""
