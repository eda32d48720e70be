"""Game domain services: board model, buzzer arbitration, phase transitions.

This package contains pure(ish) domain logic that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from core game mechanics. The per-app GameTable and SessionRegistry live
in ``app.extensions`` and are reached through the helpers below.
"""
from flask import current_app


def get_game_table():
    return current_app.extensions['buzzboard']['table']


def get_sessions():
    return current_app.extensions['buzzboard']['sessions']


def get_store():
    return current_app.extensions['buzzboard']['store']
