"""
The controllers of specific resource kinds, built on the generic reconciler.

Each kind is a subpackage with its dependencies, actuator, status writer,
and a ``setup()`` function to wire them all together at startup.
"""
