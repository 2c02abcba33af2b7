"""Skill discovery, installation and path safety helpers."""
