"""Flat-file storage — atomic writes and the per-PR artifact tree."""
