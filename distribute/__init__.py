"""distribute: build and publish Flutter apps from a YAML manifest."""

__version__ = "0.1.0"
