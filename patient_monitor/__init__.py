"""Real-time patient vitals monitoring.

This package owns per-patient measurement history and the clinical rules that
scan it for alerts. Collaborators (sources, sinks, the periodic driver) live in
``adapters`` and ``services`` and only talk to the core through its public API.
"""
