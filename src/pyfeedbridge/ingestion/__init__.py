"""Ingestion helpers.

Everything that turns wire data (push frames, pull responses) into
normalized :class:`pyfeedbridge.state.events.Reading` objects.
"""
