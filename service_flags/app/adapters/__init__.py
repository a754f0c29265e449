"""
Adapters package.

Network collaborators that satisfy the interfaces the runtime core
consumes. Keep protocol details here so the caches stay transport-agnostic.
"""
