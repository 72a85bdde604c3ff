"""Package constants."""

HEADSPIN_QOE_VERSION = "0.3.0"
