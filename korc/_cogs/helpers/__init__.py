"""
General-purpose helpers not related to reconciliation itself.

These are things that should better be in the standard library
or in the dependencies. They do not depend on anything in the framework.
"""
