"""
Helpers for testing the controllers built with korc.
"""
from korc.testing.cluster import FakeCluster

__all__ = [
    'FakeCluster',
]
