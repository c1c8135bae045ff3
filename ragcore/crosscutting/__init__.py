"""Concerns transversales: config, logging, errores, métricas y timing."""
