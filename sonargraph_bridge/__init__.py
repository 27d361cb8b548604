"""Republish Sonargraph structural-analysis findings as SonarQube annotations."""

__version__ = "0.1.0"

PLUGIN_KEY = "sonargraphintegration"
PLUGIN_PRESENTATION_NAME = "Sonargraph Integration"
