"""HTTP input plugin: REST API for declaring DNS zones and records."""

from plugins.inputs.http.api import HTTPInputPlugin

__all__ = ["HTTPInputPlugin"]
