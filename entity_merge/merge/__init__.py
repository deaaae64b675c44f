"""
Merge components: strategy application, merge execution, redirect
resolution and undo.
"""

from .executor import MergeExecutor, apply_strategy
from .history import MergeHistory
from .redirects import DEFAULT_MAX_DEPTH, RedirectResolver, follow_redirects, resolve_redirect_chain

__all__ = [
    'apply_strategy',
    'MergeExecutor',
    'MergeHistory',
    'RedirectResolver',
    'follow_redirects',
    'resolve_redirect_chain',
    'DEFAULT_MAX_DEPTH',
]
