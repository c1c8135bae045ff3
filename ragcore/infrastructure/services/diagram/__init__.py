"""Renderers de diagramas PlantUML."""
