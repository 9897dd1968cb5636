"""HTTP layer of the wizard: blueprints and error handlers."""
