"""Domain layer: events, aggregates, actors and scopes.

This package defines the primitives that every other layer depends on
but never modifies.  Everything here is immutable.
"""
