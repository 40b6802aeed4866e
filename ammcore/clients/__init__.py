"""Blockchain clients used as external collaborators."""
