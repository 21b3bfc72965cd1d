"""Plugins shipped with silsilah."""
