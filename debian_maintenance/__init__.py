"""
Debian Maintenance Orchestrator

Runs a fixed maintenance pipeline on Debian-family systems (update, upgrade,
snapshot, cleanup, reboot detection) and reports the outcome of each step.
"""

__version__ = "2025.7.0"
