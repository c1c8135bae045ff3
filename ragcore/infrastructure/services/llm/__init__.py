"""Adapters de generación de texto (Google Gemini + fake determinístico)."""
