"""HTTP blueprints for the usersync Flask application."""
