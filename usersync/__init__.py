"""User store synchronisation service for identity provider webhooks.

To use the Flask app:
    from usersync.flask_app import create_app

To use the sync pipeline without Flask:
    from usersync.core.dispatcher import WebhookDispatcher
"""
# Note: We don't import flask_app by default to avoid the Flask dependency
# for CLI scripts that only use usersync.core
