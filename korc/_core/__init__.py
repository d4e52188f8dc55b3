"""
The core of the reconciliation engine: actions, engines, intents, the reactor.

Actions are small pure-ish routines of one reconcile pass (progress tracking,
logging, diffing). Engines are the long-living collaborators shared between
passes (indices, dependency trackers, deletion guards). Intents are the
contracts implemented per resource kind. The reactor runs the passes.
"""
