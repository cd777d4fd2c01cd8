"""Mirror synchronizer — squash, exclude mirror-only paths, diff against upstream."""

from mirrorbot.engines.mirror_sync.synchronizer import MirrorSynchronizer, SyncResult

__all__ = ["MirrorSynchronizer", "SyncResult"]
