"""
HomeDash Sidecar

Discovers applications hosted in running Docker containers from their
``homedash.*`` labels, resolves Docker Swarm service-level overrides, and
reports the result to a HomeDash server on a fixed interval.
"""

__version__ = "1.0.0"
