"""MBean addressing and the resolve/read/invoke steps of a probe.

Only the dependency-free object name types are re-exported here; the
pipeline steps live in ``mbean.resolver``, ``mbean.reader`` and
``mbean.invoker``.
"""

from mbean.object_name import MalformedObjectNameError, ObjectName

__all__ = [
    "MalformedObjectNameError",
    "ObjectName",
]
