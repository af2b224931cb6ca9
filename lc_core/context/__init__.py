"""Page/module context: binding during imports and explicit management."""

from lc_core.context.binder import (
    BindSummary,
    BindTarget,
    bind_entries,
    effective_bind_mode,
    resolve_bind_target,
)
from lc_core.context.manager import (
    ModuleNode,
    PageNode,
    bind_entries_to_context,
    context_tree,
    create_module,
    create_page,
    delete_module,
    delete_page,
    unbind_entries_from_context,
)

__all__ = [
    "BindSummary",
    "BindTarget",
    "ModuleNode",
    "PageNode",
    "bind_entries",
    "bind_entries_to_context",
    "context_tree",
    "create_module",
    "create_page",
    "delete_module",
    "delete_page",
    "effective_bind_mode",
    "resolve_bind_target",
    "unbind_entries_from_context",
]
