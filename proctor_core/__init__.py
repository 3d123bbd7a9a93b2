"""
Proctoring session event engine.

Turns a stream of perception snapshots (face count, focus state, detected
objects) into a deduplicated log of integrity events and a running
integrity score per session.
"""

__version__ = "1.0.0"
