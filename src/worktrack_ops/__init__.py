"""
worktrack_ops - Storage collaborators and the engine facade.

CLI commands delegate to WorkEngine; WorkEngine delegates to the pure
graph/query core in worktrack_core and to a WorkStorage implementation.

Modules:
    storage: WorkStorage interface and InMemoryStorage
    local_fs: Markdown + JSON storage under <root>/.work/
    engine: WorkEngine facade
"""

from .storage import InMemoryStorage, WorkStorage, format_item_id
from .local_fs import LocalFsStorage
from .engine import GraphReport, WorkEngine

__all__ = [
    "WorkStorage",
    "InMemoryStorage",
    "LocalFsStorage",
    "format_item_id",
    "WorkEngine",
    "GraphReport",
]
