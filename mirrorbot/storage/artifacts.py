"""Per-PR output tree: ``<root>/<number>/<sha>/{patch,rejects,webrev,...}``."""

from __future__ import annotations

import shutil
from pathlib import Path

GIT_PATCH = "git.patch"
HG_PATCH = "hg.patch"
LINT_OUTPUT = "jcheck.txt"
REVIEW_DIR = "webrev"
STATUS_PAGE = "index.html"
IMPORT_LOG = "hg-import.log"


class ArtifactStore:
    """Knows where every artifact of a pipeline run lives on disk."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def pr_dir(self, pr_number: int) -> Path:
        return self.root / str(pr_number)

    def run_dir(self, pr_number: int, head_sha: str) -> Path:
        return self.pr_dir(pr_number) / head_sha

    def patch_dir(self, pr_number: int, head_sha: str) -> Path:
        return self.run_dir(pr_number, head_sha) / "patch"

    def rejects_dir(self, pr_number: int, head_sha: str) -> Path:
        return self.run_dir(pr_number, head_sha) / "rejects"

    def lint_path(self, pr_number: int, head_sha: str) -> Path:
        return self.run_dir(pr_number, head_sha) / LINT_OUTPUT

    def review_dir(self, pr_number: int, head_sha: str) -> Path:
        return self.run_dir(pr_number, head_sha) / REVIEW_DIR

    def status_page_path(self, pr_number: int, head_sha: str) -> Path:
        return self.run_dir(pr_number, head_sha) / STATUS_PAGE

    def prepare(self, pr_number: int, head_sha: str) -> Path:
        """Create the run directory tree and return the patch directory."""
        patch_dir = self.patch_dir(pr_number, head_sha)
        patch_dir.mkdir(parents=True, exist_ok=True)
        return patch_dir

    def store_rejects(
        self, pr_number: int, head_sha: str, rejects: list[Path], import_log: str
    ) -> list[Path]:
        """Move reject files into the run's ``rejects/`` directory.

        The hg import output is always kept as ``hg-import.log`` so a conflict
        leaves at least one artifact even when hg wrote no ``.rej`` files.
        Existing copies from an earlier run of the same head are overwritten.
        """
        target_dir = self.rejects_dir(pr_number, head_sha)
        target_dir.mkdir(parents=True, exist_ok=True)
        stored: list[Path] = []
        for reject in rejects:
            target = target_dir / reject.name
            shutil.copyfile(reject, target)
            reject.unlink(missing_ok=True)
            stored.append(target)
        log_path = target_dir / IMPORT_LOG
        log_path.write_text(import_log, encoding="utf-8")
        stored.append(log_path)
        return stored

    def resolve(self, relative: str) -> Path | None:
        """Map a URL path below ``/pr/`` to a file, or ``None``.

        Directories resolve to their ``index.html``. Anything escaping the
        root resolves to ``None``.
        """
        root = self.root.resolve()
        candidate = (root / relative).resolve()
        if candidate != root and root not in candidate.parents:
            return None
        if candidate.is_dir():
            candidate = candidate / STATUS_PAGE
        return candidate if candidate.is_file() else None
