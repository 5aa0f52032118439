"""Item metadata, correlation parsers and the icon catalog."""
