"""
kubegen generates statically typed Kubernetes subresource clients and provides the runtime they delegate to,
including a resumable, auto-resyncing watch.
"""

__version__ = "0.1.0"
