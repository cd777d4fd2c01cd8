"""Artifact router — serves ``<home>/pr/...`` (status pages, patches, webrevs)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from mirrorbot.api.deps import get_artifact_store
from mirrorbot.storage.artifacts import ArtifactStore

router = APIRouter()

_TEXT_SUFFIXES = frozenset({".patch", ".txt", ".rej", ".log", ".diff"})


@router.get("/{path:path}")
async def get_artifact(
    path: str,
    store: ArtifactStore = Depends(get_artifact_store),
) -> FileResponse:
    resolved = store.resolve(path)
    if resolved is None:
        raise HTTPException(status_code=404, detail="Not found")
    media_type = "text/plain; charset=utf-8" if resolved.suffix in _TEXT_SUFFIXES else None
    return FileResponse(resolved, media_type=media_type)
