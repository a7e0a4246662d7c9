"""Exception types raised by curlglow."""


class CurlGlowError(Exception):
    """Base class for every error raised by the package."""


class StartupFailure(CurlGlowError, RuntimeError):
    """A host resource (window, GL context, shader, framebuffer) is unavailable."""


class NumericDegeneracy(CurlGlowError, ArithmeticError):
    """A particle coordinate would become NaN or infinite."""


class ConfigError(CurlGlowError, ValueError):
    pass
