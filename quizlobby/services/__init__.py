"""Lobby domain services: questions, players, scoring, rounds.

This package contains pure domain logic that is driven by the HTTP routes
and socket handlers, keeping transport concerns separated from core game
mechanics. Nothing in here imports Flask; outbound notifications go through
the broadcaster callable handed to the ``LobbyRegistry``.
"""
