"""Domain layer: value objects, aggregate schemas, transitions, events.

Everything here is immutable and synchronous.  Functions return
``Result`` values for expected failures and never touch I/O.
"""
