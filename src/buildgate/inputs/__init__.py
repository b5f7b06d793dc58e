"""Readers for tool-generated artefacts."""
