"""
Workspace lifecycle management.

Provides:
- Workspace: reset, exclusive access for load/save, scoped scratch directories
- WorkspaceInfo: snapshot of workspace contents
"""

from .workspace import Workspace, WorkspaceInfo

__all__ = [
    "Workspace",
    "WorkspaceInfo",
]
