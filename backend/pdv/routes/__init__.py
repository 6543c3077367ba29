# Overview: Shared helpers for API blueprints.

from flask import current_app


def get_repository():
    """Persistence collaborator installed by create_app (tests may swap it)."""
    return current_app.extensions["pdv_repository"]
