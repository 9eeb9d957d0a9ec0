"""Presentation uploads: session resolution and canonical naming."""
