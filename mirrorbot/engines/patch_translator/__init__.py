"""Patch translator — git email patches to hg changeset patches."""

from mirrorbot.engines.patch_translator.translator import translate

__all__ = ["translate"]
