# tracker/project_context.py

from __future__ import annotations

import os
from typing import Optional, Sequence

from tracker.models import ProjectContext, make_project_context


def resolve_project_context(
    workspace_folders: Sequence[str],
    active_file: Optional[str] = None,
) -> Optional[ProjectContext]:
    """
    Which project the editor is working on:
    - the first workspace folder, if any is open
    - otherwise the file in the active editor
    - otherwise nothing
    """
    for folder in workspace_folders:
        if folder:
            return make_project_context(folder)

    if active_file and os.path.isfile(active_file):
        return make_project_context(active_file, name=os.path.basename(active_file))

    return None


class ProjectResolver:
    """Callable view over the tracked workspace folders or single file, updated by the host."""

    def __init__(self, workspace_folders: Sequence[str] = (), active_file: Optional[str] = None):
        self.workspace_folders = list(workspace_folders)
        self.active_file = active_file

    def set_workspace_folders(self, folders: Sequence[str]) -> None:
        self.workspace_folders = list(folders)

    def __call__(self) -> Optional[ProjectContext]:
        return resolve_project_context(self.workspace_folders, self.active_file)
