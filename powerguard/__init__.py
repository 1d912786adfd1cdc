"""PowerGuard - AI-assisted battery and data optimizer for Android devices."""

try:
    from powerguard._version import version as __version__
except ImportError:
    __version__ = "0.0.0.dev0"
