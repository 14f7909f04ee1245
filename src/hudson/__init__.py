"""Hudson: provision a CI server and onboard local projects onto it."""

__version__ = "0.3.0"
HUDSON_VERSION = "1.371"
