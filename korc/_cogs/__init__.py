"""
Cogs are the lowest-level parts of the framework: structures, clients,
configuration, and helpers. They know nothing about reconciliation itself.

The cogs MUST NOT import anything from :mod:`korc._core`.
"""
