"""Core infrastructure: paths, configuration, errors and the service facade."""
