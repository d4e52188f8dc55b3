"""
All the structures of objects as they come from/to the cluster API,
and the purely computational functions to inspect and patch them.

No external calls or any i/o activities are done here.
"""
