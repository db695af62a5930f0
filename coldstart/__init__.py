"""Cold-start benchmark monitor.

Probes a fixed set of routes on several hosting backends, rotating which route
is hit first on every iteration, and appends one CSV record per probe.
"""

__version__ = "0.1.0"
