"""Game domain services: scoring, session state machine, room registry.

This package contains the core game logic that socket handlers and HTTP
routes call into, keeping transport concerns separated from the rules of
the dice game itself.
"""
