"""
Node Integration Layer.

Provides abstracted access to a Bluzelle node's REST server for account
lookups, transaction broadcast and direct queries.
"""

from bluzelle.node.interface import NodeInterface
from bluzelle.node.rest import RestAdapter

__all__ = [
    "NodeInterface",
    "RestAdapter",
]
