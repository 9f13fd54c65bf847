"""State/reconciliation layer.

This package is the single source of truth for how readings arriving from
the push channel, the initial pull and the periodic poll are merged into
one "latest reading per channel" map.
"""
